import pytest

from conftest import auth_headers
from services.order_service.models import Order


@pytest.fixture
async def paid_order(client, gateway, place_order, products, customer):
    headers = auth_headers(customer)
    order = (await place_order((products["tent"], 1), (products["lamp"], 2), headers=headers))["orders"][0]
    intent = (await client.post("/payments/intents", json={"order_id": order["id"]}, headers=headers)).json()
    gateway.succeed(intent["payment_intent_id"])
    confirmed = await client.post("/payments/confirm", json={"order_id": order["id"]}, headers=headers)
    assert confirmed.json()["payment_status"] == "completed"
    return {**order, "payment_intent_id": intent["payment_intent_id"]}  # total 118.80


async def refund(client, admin, order, **payload):
    return await client.post(f"/admin/orders/{order['id']}/refund", json=payload, headers=auth_headers(admin))


async def test_full_refund(client, gateway, mailer, paid_order, admin):
    await mailer.drain()

    response = await refund(client, admin, paid_order, reason="Arrived damaged")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "refunded"
    assert body["status_label"] == "Refunded"
    assert body["payment_status"] == "refunded"
    assert body["refund_amount"] == 118.8
    assert body["refund_reason"] == "Arrived damaged"
    assert body["refunded_at"] is not None
    assert body["refund_reference"].startswith("re_fake_")
    assert body["total_amount"] == 118.8

    call = gateway.calls[-1]
    assert call["method"] == "create_refund"
    assert call["payment_intent_id"] == paid_order["payment_intent_id"]
    assert call["amount"] == 11880

    await mailer.drain()
    email = mailer.sender.sent_emails[-1]
    assert email["subject"] == f"Refund Processed - {paid_order['order_number']}"
    assert "$118.80" in email["body"]
    assert "Arrived damaged" in email["body"]


async def test_partial_refund(client, gateway, paid_order, admin):
    response = await refund(client, admin, paid_order, amount="20.50")

    assert response.status_code == 200
    body = response.json()
    assert body["refund_amount"] == 20.5
    assert body["total_amount"] == 118.8
    assert body["status"] == "refunded"
    assert gateway.calls[-1]["amount"] == 2050


async def test_refund_after_delivery(client, paid_order, admin):
    headers = auth_headers(admin)
    for status in ("processing", "shipped", "delivered"):
        await client.patch(f"/admin/orders/{paid_order['id']}/status", json={"status": status}, headers=headers)

    response = await refund(client, admin, paid_order)

    assert response.status_code == 200
    assert response.json()["status"] == "refunded"


async def test_unpaid_order_cannot_be_refunded(client, gateway, place_order, products, customer, admin):
    order = (await place_order((products["lamp"], 1), headers=auth_headers(customer)))["orders"][0]

    response = await refund(client, admin, order)

    assert response.status_code == 422
    assert "completed payment" in response.json()["detail"]
    assert not [c for c in gateway.calls if c["method"] == "create_refund"]


async def test_cannot_refund_twice(client, gateway, paid_order, admin):
    await refund(client, admin, paid_order)

    response = await refund(client, admin, paid_order)

    assert response.status_code == 422
    assert len([c for c in gateway.calls if c["method"] == "create_refund"]) == 1


@pytest.mark.parametrize("amount", ["0", "-5", "118.81"])
async def test_refund_amount_must_be_within_total(client, gateway, paid_order, admin, amount):
    response = await refund(client, admin, paid_order, amount=amount)

    assert response.status_code == 422
    assert not [c for c in gateway.calls if c["method"] == "create_refund"]


async def test_provider_failure_changes_nothing(client, db, gateway, mailer, paid_order, admin):
    await mailer.drain()
    gateway.configure(should_succeed=False, failure_reason="Charge ch_123 has already been refunded.")

    response = await refund(client, admin, paid_order)

    assert response.status_code == 502
    assert response.json()["detail"] == "Charge ch_123 has already been refunded."
    order = await db.get(Order, paid_order["id"], populate_existing=True)
    assert order.status == "confirmed"
    assert order.payment_status == "completed"
    assert order.refund_amount is None
    assert order.refunded_at is None
    assert mailer.pending == 0


async def test_customers_cannot_refund(client, paid_order, customer):
    response = await client.post(
        f"/admin/orders/{paid_order['id']}/refund", json={}, headers=auth_headers(customer)
    )

    assert response.status_code == 403


async def test_refund_unknown_order(client, admin):
    response = await client.post("/admin/orders/999/refund", json={}, headers=auth_headers(admin))

    assert response.status_code == 404
