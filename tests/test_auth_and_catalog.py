from conftest import PASSWORD, auth_headers

INTERNAL = {"X-Internal-API-Key": "test-internal-key"}


class TestAuth:
    async def test_register_login_me(self, client):
        registered = await client.post(
            "/auth/register",
            json={"email": "New@Example.com", "password": "s3cret-pass", "first_name": "New"},
        )
        assert registered.status_code == 201
        assert registered.json()["role"] == "customer"
        assert registered.json()["email"] == "new@example.com"

        login = await client.post("/auth/login", json={"email": "new@example.com", "password": "s3cret-pass"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["first_name"] == "New"

    async def test_duplicate_email(self, client, customer):
        response = await client.post("/auth/register", json={"email": customer.email, "password": "another-pass"})

        assert response.status_code == 409

    async def test_wrong_password(self, client, customer):
        response = await client.post("/auth/login", json={"email": customer.email, "password": "nope-nope"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_login_existing_user(self, client, customer):
        response = await client.post("/auth/login", json={"email": customer.email, "password": PASSWORD})

        assert response.status_code == 200

    async def test_me(self, client, admin):
        response = await client.get("/auth/me", headers=auth_headers(admin))

        assert response.json()["role"] == "admin"


class TestCatalog:
    async def test_writes_need_the_internal_key(self, client):
        response = await client.post("/catalog/stores", json={"name": "Pop-up"})

        assert response.status_code == 403

    async def test_create_store_and_product(self, client):
        store = await client.post("/catalog/stores", json={"name": "Pop Up Shop"}, headers=INTERNAL)
        assert store.status_code == 201
        assert store.json()["slug"] == "pop-up-shop"

        product = await client.post(
            "/catalog/products",
            json={"store_id": store.json()["id"], "name": "Blue Mug", "price": "12.50", "inventory": 4},
            headers=INTERNAL,
        )
        assert product.status_code == 201
        assert product.json()["price"] == 12.5

        public = await client.get(f"/catalog/products/{product.json()['id']}")
        assert public.json()["name"] == "Blue Mug"

    async def test_duplicate_store_slug(self, client, stores):
        response = await client.post("/catalog/stores", json={"name": "Acme Outdoors"}, headers=INTERNAL)

        assert response.status_code == 409

    async def test_product_for_unknown_store(self, client):
        response = await client.post(
            "/catalog/products", json={"store_id": 404, "name": "Ghost", "price": "1.00"}, headers=INTERNAL
        )

        assert response.status_code == 404

    async def test_search_products(self, client, products):
        response = await client.get("/catalog/products", params={"query": "tent"})

        assert [p["name"] for p in response.json()] == ["Trail Tent"]

    async def test_update_product(self, client, products):
        response = await client.patch(
            f"/catalog/products/{products['lamp'].id}", json={"inventory": 0, "status": "inactive"}, headers=INTERNAL
        )

        assert response.status_code == 200
        assert response.json()["inventory"] == 0
        assert response.json()["status"] == "inactive"

    async def test_unknown_product(self, client):
        assert (await client.get("/catalog/products/31337")).status_code == 404


async def test_health(client):
    assert (await client.get("/health")).json()["status"] == "running"
