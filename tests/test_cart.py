from conftest import auth_headers


async def test_cart_requires_a_token(client):
    response = await client.get("/cart")

    assert response.status_code == 401


async def test_empty_cart(client, customer):
    response = await client.get("/cart", headers=auth_headers(customer))

    assert response.status_code == 200
    assert response.json() == {
        "items": [],
        "item_count": 0,
        "subtotal": 0.0,
        "shipping_cost": 0.0,
        "tax_amount": 0.0,
        "total_amount": 0.0,
    }


async def test_add_items_prices_the_cart(client, products, customer):
    headers = auth_headers(customer)

    await client.post("/cart/items", json={"product_id": products["lamp"].id, "quantity": 1}, headers=headers)
    response = await client.post(
        "/cart/items", json={"product_id": products["book"].id, "quantity": 2}, headers=headers
    )

    assert response.status_code == 200
    cart = response.json()
    assert cart["item_count"] == 3
    assert cart["subtotal"] == 55.0
    assert cart["shipping_cost"] == 9.99
    assert cart["tax_amount"] == 4.4
    assert cart["total_amount"] == 69.39
    lamp_line = next(line for line in cart["items"] if line["product_id"] == products["lamp"].id)
    assert lamp_line["name"] == "Camp Lamp"
    assert lamp_line["line_total"] == 25.0


async def test_adding_the_same_product_merges_quantities(client, products, customer):
    headers = auth_headers(customer)
    payload = {"product_id": products["lamp"].id, "quantity": 2}

    await client.post("/cart/items", json=payload, headers=headers)
    cart = (await client.post("/cart/items", json=payload, headers=headers)).json()

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 4


async def test_cannot_add_more_than_in_stock(client, products, customer):
    headers = auth_headers(customer)
    await client.post("/cart/items", json={"product_id": products["book"].id, "quantity": 2}, headers=headers)

    response = await client.post(
        "/cart/items", json={"product_id": products["book"].id, "quantity": 2}, headers=headers
    )

    assert response.status_code == 422
    assert response.json()["errors"][0]["requested"] == 4
    assert response.json()["errors"][0]["available"] == 3


async def test_cannot_add_inactive_product(client, products, customer):
    response = await client.post(
        "/cart/items", json={"product_id": products["retired"].id, "quantity": 1}, headers=auth_headers(customer)
    )

    assert response.status_code == 422


async def test_cannot_add_unknown_product(client, products, customer):
    response = await client.post(
        "/cart/items", json={"product_id": 4242, "quantity": 1}, headers=auth_headers(customer)
    )

    assert response.status_code == 404


async def test_update_quantity(client, products, customer):
    headers = auth_headers(customer)
    lamp_id = products["lamp"].id
    await client.post("/cart/items", json={"product_id": lamp_id, "quantity": 1}, headers=headers)

    cart = (await client.put(f"/cart/items/{lamp_id}", json={"quantity": 5}, headers=headers)).json()

    assert cart["items"][0]["quantity"] == 5


async def test_update_to_zero_removes_the_item(client, products, customer):
    headers = auth_headers(customer)
    lamp_id = products["lamp"].id
    await client.post("/cart/items", json={"product_id": lamp_id, "quantity": 1}, headers=headers)

    cart = (await client.put(f"/cart/items/{lamp_id}", json={"quantity": 0}, headers=headers)).json()

    assert cart["items"] == []


async def test_update_item_not_in_cart(client, products, customer):
    response = await client.put(
        f"/cart/items/{products['lamp'].id}", json={"quantity": 2}, headers=auth_headers(customer)
    )

    assert response.status_code == 404


async def test_remove_item(client, products, customer):
    headers = auth_headers(customer)
    await client.post("/cart/items", json={"product_id": products["lamp"].id, "quantity": 1}, headers=headers)
    await client.post("/cart/items", json={"product_id": products["book"].id, "quantity": 1}, headers=headers)

    cart = (await client.delete(f"/cart/items/{products['lamp'].id}", headers=headers)).json()

    assert [line["product_id"] for line in cart["items"]] == [products["book"].id]


async def test_clear_cart(client, products, customer):
    headers = auth_headers(customer)
    await client.post("/cart/items", json={"product_id": products["lamp"].id, "quantity": 1}, headers=headers)

    response = await client.delete("/cart", headers=headers)

    assert response.status_code == 204
    assert (await client.get("/cart", headers=headers)).json()["items"] == []


async def test_carts_are_per_user(client, products, customer, other_customer):
    await client.post(
        "/cart/items", json={"product_id": products["lamp"].id, "quantity": 1}, headers=auth_headers(customer)
    )

    cart = (await client.get("/cart", headers=auth_headers(other_customer))).json()

    assert cart["items"] == []
