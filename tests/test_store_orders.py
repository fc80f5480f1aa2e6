import pytest

from conftest import _make_user, auth_headers


@pytest.fixture
async def seller(db, stores):
    """Owner of the first store (Acme Outdoors)."""
    user = await _make_user(db, "owner@acme.example", first_name="Olive", last_name="Owner")
    acme, _ = stores
    acme.owner_id = user.id
    await db.commit()
    return user


@pytest.fixture
async def book_seller(db, stores):
    user = await _make_user(db, "owner@books.example", first_name="Bo", last_name="Books")
    _, books = stores
    books.owner_id = user.id
    await db.commit()
    return user


async def pay(client, gateway, order, headers):
    intent = (await client.post("/payments/intents", json={"order_id": order["id"]}, headers=headers)).json()
    gateway.succeed(intent["payment_intent_id"])
    await client.post("/payments/confirm", json={"order_id": order["id"]}, headers=headers)


@pytest.fixture
async def acme_order(client, gateway, place_order, products, customer):
    headers = auth_headers(customer)
    order = (await place_order((products["lamp"], 2), headers=headers))["orders"][0]
    await pay(client, gateway, order, headers)
    return order


async def set_status(client, user, order, status, **extra):
    return await client.patch(
        f"/orders/{order['id']}/status", json={"status": status, **extra}, headers=auth_headers(user)
    )


class TestStoreOrderList:
    async def test_seller_sees_only_their_store(self, client, place_order, products, customer, seller):
        body = await place_order((products["lamp"], 1), (products["book"], 1), headers=auth_headers(customer))
        acme_order = next(o for o in body["orders"] if o["store_id"] == products["lamp"].store_id)

        response = await client.get("/orders/store", headers=auth_headers(seller))

        assert response.status_code == 200
        assert [o["id"] for o in response.json()["data"]] == [acme_order["id"]]
        assert response.json()["meta"]["total_count"] == 1

    async def test_filters_by_status_and_search(self, client, place_order, products, customer, seller):
        headers = auth_headers(customer)
        first = (await place_order((products["lamp"], 1), headers=headers))["orders"][0]
        second = (await place_order((products["tent"], 1), headers=headers))["orders"][0]
        await client.post(f"/orders/{second['id']}/cancel", headers=headers)

        pending = await client.get("/orders/store", params={"status": "pending"}, headers=auth_headers(seller))
        by_number = await client.get(
            "/orders/store", params={"search": first["order_number"]}, headers=auth_headers(seller)
        )

        assert [o["id"] for o in pending.json()["data"]] == [first["id"]]
        assert [o["id"] for o in by_number.json()["data"]] == [first["id"]]

    async def test_user_without_a_store_sees_nothing(self, client, place_order, products, customer):
        await place_order((products["lamp"], 1), headers=auth_headers(customer))

        response = await client.get("/orders/store", headers=auth_headers(customer))

        assert response.json()["data"] == []

    async def test_requires_token(self, client):
        assert (await client.get("/orders/store")).status_code == 401


class TestSellerStatusUpdates:
    async def test_fulfilment_flow(self, client, mailer, acme_order, seller):
        await mailer.drain()

        processing = await set_status(client, seller, acme_order, "processing")
        shipped = await set_status(client, seller, acme_order, "shipped", tracking_number="1Z777")
        delivered = await set_status(client, seller, acme_order, "delivered")

        assert processing.status_code == 200
        assert processing.json()["status"] == "processing"
        assert shipped.json()["tracking_number"] == "1Z777"
        assert delivered.json()["status"] == "delivered"
        await mailer.drain()
        bodies = [e["body"] for e in mailer.sender.sent_emails]
        assert len(bodies) == 3
        assert "Tracking number: 1Z777" in bodies[1]

    async def test_other_store_order_is_not_found(self, client, acme_order, book_seller):
        response = await set_status(client, book_seller, acme_order, "processing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    async def test_buyer_cannot_drive_fulfilment(self, client, acme_order, customer, seller):
        response = await set_status(client, customer, acme_order, "processing")

        assert response.status_code == 404

    async def test_seller_cannot_cancel(self, client, acme_order, seller):
        response = await set_status(client, seller, acme_order, "cancelled")

        assert response.status_code == 422
        assert "seller cannot" in response.json()["detail"]

    async def test_seller_cannot_confirm_unpaid_order(self, client, place_order, products, customer, seller):
        order = (await place_order((products["lamp"], 1), headers=auth_headers(customer)))["orders"][0]

        response = await set_status(client, seller, order, "confirmed")

        assert response.status_code == 422
        assert "payment provider" in response.json()["detail"]

    async def test_seller_cannot_refund_by_status(self, client, acme_order, seller):
        response = await set_status(client, seller, acme_order, "refunded")

        assert response.status_code == 422
        assert "refund endpoint" in response.json()["detail"]

    async def test_delivered_order_is_final(self, client, acme_order, seller):
        for status in ("processing", "shipped", "delivered"):
            await set_status(client, seller, acme_order, status)

        response = await set_status(client, seller, acme_order, "shipped")

        assert response.status_code == 422
        assert "already delivered" in response.json()["detail"]
