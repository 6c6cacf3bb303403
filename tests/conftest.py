import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from clinigoal.auth.mailer import get_mailer
from clinigoal.auth.security import ROLE_ADMIN, ROLE_USER, create_access_token
from clinigoal.catalog.storage import LocalFileStorage, get_storage
from clinigoal.database import create_indexes, get_db
from clinigoal.main import app
from clinigoal.payments.gateway import get_payment_gateway


class FakeMailer:
    def __init__(self):
        self.ok = True
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.ok


class FakeGateway:
    key_id = "rzp_test_key"

    def __init__(self):
        self.orders = []
        self.error = None

    async def create_order(self, amount, currency, receipt, notes=None):
        if self.error:
            raise self.error
        self.orders.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": notes})
        return f"order_{len(self.orders)}"

    def verify_signature(self, order_id, payment_id, signature):
        return signature == "valid-signature"


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["clinigoal_test"]
    await create_indexes(database)
    return database


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture
async def client(db, mailer, gateway, storage):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('ADM_TEST', ROLE_ADMIN)}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {create_access_token('USR_TEST', ROLE_USER)}"}


@pytest.fixture
def approve_purchase(client, admin_headers):
    """Record a payment for (user, course) and approve it"""
    async def _approve(user_id, course_id, amount=499):
        response = await client.post("/api/payments", json={
            "user_id": user_id, "course_id": course_id, "amount": amount
        })
        assert response.status_code == 201
        payment_id = response.json()["payment_id"]

        response = await client.post(
            "/api/payments/approve", json={"payment_id": payment_id}, headers=admin_headers
        )
        assert response.status_code == 200
        return response.json()

    return _approve
