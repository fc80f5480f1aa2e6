"""End-to-end walkthroughs of a customer checkout, payment and partial refund."""
from decimal import Decimal

import pytest

from conftest import auth_headers, checkout_payload
from services.product_service.models import Product


@pytest.fixture
async def lantern(db, stores):
    product = Product(
        store_id=stores[0].id, name="Brass Lantern", slug="brass-lantern", sku="LANT-1",
        price=Decimal("40.00"), inventory=5,
    )
    db.add(product)
    await db.commit()
    return product


async def test_two_lanterns_to_a_us_address(client, db, lantern, customer):
    response = await client.post("/orders", json=checkout_payload((lantern, 2)), headers=auth_headers(customer))

    assert response.status_code == 201
    order = response.json()["orders"][0]
    assert order["subtotal"] == 80.0
    assert order["shipping_cost"] == 9.99
    assert order["tax_amount"] == 6.4
    assert order["total_amount"] == 96.39
    assert order["subtotal"] == sum(item["total_price"] for item in order["items"])
    await db.refresh(lantern)
    assert lantern.inventory == 3


async def test_partial_refund_keeps_the_order_total(client, gateway, lantern, customer, admin):
    headers = auth_headers(customer)
    order = (await client.post("/orders", json=checkout_payload((lantern, 2)), headers=headers)).json()["orders"][0]
    intent = (await client.post("/payments/intents", json={"order_id": order["id"]}, headers=headers)).json()
    gateway.succeed(intent["payment_intent_id"])
    await client.post(
        "/payments/webhook",
        content=gateway.event("payment_intent.succeeded", intent["payment_intent_id"]),
        headers={"Stripe-Signature": "test-signature"},
    )

    response = await client.post(
        f"/admin/orders/{order['id']}/refund", json={"amount": "25.00"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    refunded = response.json()
    assert refunded["refund_amount"] == 25.0
    assert refunded["status"] == "refunded"
    assert refunded["payment_status"] == "refunded"
    assert refunded["total_amount"] == 96.39
    assert gateway.refunds[-1]["amount"] == 2500
