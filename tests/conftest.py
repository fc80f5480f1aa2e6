import os

# Configure before anything imports shared.config.settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTEL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["SMTP_HOST"] = ""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from main import app
from services.auth_service.models import User, UserRole
from services.auth_service.service import hash_password
from services.notification_service.queue import NotificationQueue, reset_notifier, set_notifier
from services.notification_service.senders import InMemoryEmailSender
from services.payment_service.gateway import FakeGateway, reset_gateway, set_gateway
from services.product_service.models import Product, ProductStatus, Store
from shared.config.database import Base, get_db
from shared.security.jwt_handler import create_access_token

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def engine(tmp_path):
    # A file database so every request's session sees the same data
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture
def mailer():
    queue = NotificationQueue(InMemoryEmailSender())
    set_notifier(queue)
    yield queue
    reset_notifier()


@pytest.fixture
async def client(session_factory, gateway, mailer):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _make_user(db, email, role=UserRole.CUSTOMER, first_name="Test", last_name="User"):
    user = User(
        email=email,
        hashed_password=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
    )
    db.add(user)
    await db.commit()
    return user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
async def customer(db):
    return await _make_user(db, "jane@example.com", first_name="Jane", last_name="Doe")


@pytest.fixture
async def other_customer(db):
    return await _make_user(db, "sam@example.com", first_name="Sam", last_name="Smith")


@pytest.fixture
async def admin(db):
    return await _make_user(db, "admin@example.com", role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
async def stores(db):
    first = Store(name="Acme Outdoors", slug="acme-outdoors")
    second = Store(name="Book Nook", slug="book-nook")
    db.add_all([first, second])
    await db.commit()
    return first, second


@pytest.fixture
async def products(db, stores):
    """tent ($60, 5 left) and lamp ($25, 10 left) from the first store, book ($15, 3 left) from the second."""
    acme, books = stores
    tent = Product(
        store_id=acme.id, name="Trail Tent", slug="trail-tent", sku="TENT-1",
        price=Decimal("60.00"), inventory=5, status=ProductStatus.ACTIVE.value,
    )
    lamp = Product(
        store_id=acme.id, name="Camp Lamp", slug="camp-lamp", sku="LAMP-1",
        price=Decimal("25.00"), inventory=10, status=ProductStatus.ACTIVE.value,
    )
    book = Product(
        store_id=books.id, name="Field Guide", slug="field-guide", sku="BOOK-1",
        price=Decimal("15.00"), inventory=3, status=ProductStatus.ACTIVE.value,
    )
    retired = Product(
        store_id=acme.id, name="Old Stove", slug="old-stove", sku="STOVE-1",
        price=Decimal("40.00"), inventory=7, status=ProductStatus.INACTIVE.value,
    )
    db.add_all([tent, lamp, book, retired])
    await db.commit()
    return {"tent": tent, "lamp": lamp, "book": book, "retired": retired}


def address(**overrides) -> dict:
    data = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@example.com",
        "phone": "555-0100",
        "address1": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
        "country": "US",
    }
    data.update(overrides)
    return data


def checkout_payload(*lines, **extra) -> dict:
    payload = {
        "items": [{"product_id": product.id, "quantity": quantity} for product, quantity in lines],
        "shipping_address": address(),
    }
    payload.update(extra)
    return payload


@pytest.fixture
def place_order(client, products):
    """Checkout helper returning the parsed response body."""

    async def _place(*lines, headers=None, **extra):
        response = await client.post("/orders", json=checkout_payload(*lines, **extra), headers=headers or {})
        assert response.status_code == 201, response.text
        return response.json()

    return _place
