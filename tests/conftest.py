"""
Shared fixtures

The app runs in-process over httpx.ASGITransport against:
  - SQLite (aiosqlite) in a per-test temp directory
  - fakeredis for sessions, rate limiting and idempotency keys
  - FakeGateway in place of the payment processor
"""
import uuid

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis

from branchlearn.core.config import Settings
from branchlearn.core.container import ServiceContainer
from branchlearn.core.errors import GatewayError
from branchlearn.main import create_app
from branchlearn.models.catalog import Branch, EquipmentKit
from branchlearn.services.payment_gateway import IntentHandle, PaymentGateway, RetrievedIntent

PASSWORD = "TestPass123!"


# ─── Payment processor double ──────────────────────────────────────────────────
class FakeGateway(PaymentGateway):
    """In-memory intents. Tests flip an intent to succeeded with succeed()."""

    def __init__(self):
        self.intents: dict[str, dict] = {}
        self.created: list[dict] = []
        self.retrieve_calls = 0
        self.unavailable = False

    async def create_intent(self, amount_minor_units, currency, metadata):
        if self.unavailable:
            raise GatewayError()
        intent_id = f"pi_{uuid.uuid4().hex[:24]}"
        intent = {
            "amount": amount_minor_units,
            "currency": currency,
            "metadata": dict(metadata),
            "status": "requires_payment_method",
        }
        self.intents[intent_id] = intent
        self.created.append(intent)
        return IntentHandle(id=intent_id, client_secret=f"{intent_id}_secret_test")

    async def retrieve_intent(self, intent_id):
        self.retrieve_calls += 1
        if self.unavailable:
            raise GatewayError()
        intent = self.intents.get(intent_id)
        if intent is None:
            raise GatewayError(f"No such payment_intent: '{intent_id}'")
        return RetrievedIntent(
            id=intent_id,
            status=intent["status"],
            amount_charged=intent["amount"],
            metadata=dict(intent["metadata"]),
        )

    def succeed(self, intent_id: str) -> None:
        self.intents[intent_id]["status"] = "succeeded"


# ─── Fixtures ──────────────────────────────────────────────────────────────────
@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'branchlearn.db'}",
        UPLOAD_ROOT=str(tmp_path / "uploads"),
        UPLOAD_MAX_BYTES=64 * 1024,
        METRICS_ENABLED=False,
        RATE_LIMIT_MAX_ATTEMPTS=5,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def redis_client():
    return FakeRedis(server=FakeServer(), decode_responses=True)


@pytest_asyncio.fixture
async def container(settings, gateway, redis_client):
    c = ServiceContainer(settings, redis=redis_client, gateway=gateway)
    await c.open()
    yield c
    await c.close()


@pytest.fixture
def app(settings, container):
    return create_app(settings, container)


@pytest_asyncio.fixture
async def client_factory(app):
    """Independent clients (separate cookie jars) against the same app."""
    clients: list[httpx.AsyncClient] = []

    def _make() -> httpx.AsyncClient:
        c = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        clients.append(c)
        return c

    yield _make
    for c in clients:
        await c.aclose()


@pytest_asyncio.fixture
async def client(client_factory):
    return client_factory()


@pytest_asyncio.fixture
async def branch(container) -> Branch:
    """A branch priced 45000 with one equipment kit."""
    async with container.database.session() as db:
        b = Branch(
            name="Mechanical Engineering",
            description="Machines and manufacturing.",
            location="Block A",
            image="/images/branches/mechanical.jpg",
            price=45000,
        )
        db.add(b)
        await db.flush()
        db.add(EquipmentKit(branch_id=b.id, name="Lathe Machine", description="Turning.", icon="cog"))
        await db.commit()
        return b


@pytest_asyncio.fixture
async def equipment(container, branch) -> EquipmentKit:
    async with container.database.session() as db:
        result = await db.execute(select(EquipmentKit).where(EquipmentKit.branch_id == branch.id))
        return result.scalars().first()


# ─── Helpers ───────────────────────────────────────────────────────────────────
async def register(
    client: httpx.AsyncClient,
    username: str | None = None,
    *,
    role: str | None = None,
    email: str | None = None,
    password: str = PASSWORD,
) -> dict:
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    payload = {
        "username": username,
        "email": email or f"{username}@example.edu",
        "password": password,
        "name": "Test User",
    }
    if role:
        payload["role"] = role
    r = await client.post("/api/register", json=payload)
    assert r.status_code == 201, f"Register failed: {r.status_code} {r.text}"
    return r.json()


async def pay_installment(
    client: httpx.AsyncClient, gateway: FakeGateway, branch_id: str, installment: int
) -> httpx.Response:
    r = await client.post(
        "/api/create-payment-intent",
        json={"branchId": branch_id, "installmentNumber": installment},
    )
    assert r.status_code == 200, f"Intent failed: {r.status_code} {r.text}"
    intent_id = r.json()["paymentIntentId"]
    gateway.succeed(intent_id)
    return await client.post("/api/payment-success", json={"paymentIntentId": intent_id})
