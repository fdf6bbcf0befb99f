"""Shared fixtures: isolated in-memory ledgers, fake providers, signed launch data."""

import json
import random
from urllib.parse import urlencode

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.config import Settings
from app.database import build_engine, build_sessionmaker, create_tables
from app.deps import get_ip_lookup, get_payments, get_phone_lookup
from app.errors import UpstreamError
from app.main import create_app
from app.security import sign_launch_data
from app.services.lookups import SyntheticPhoneLookup
from app.storage.ledger import LedgerStorage

BOT_TOKEN = "7000000000:TEST-bot-token"

TELEGRAM_USER = {
    "id": 424242,
    "first_name": "Ivan",
    "last_name": "Petrov",
    "username": "ivan_p",
    "photo_url": "https://t.me/i/userpic/320/ivan.jpg",
}


def make_init_data(user=None, *, bot_token: str = BOT_TOKEN, **extra) -> str:
    """Launch payload signed the way Telegram signs it."""
    pairs = {
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "auth_date": "1700000000",
        "user": json.dumps(user or TELEGRAM_USER),
    }
    pairs.update(extra)
    pairs["hash"] = sign_launch_data(pairs, bot_token)
    return urlencode(pairs)


class FakeIpLookup:
    def __init__(self):
        self.calls = []
        self.fail = False

    async def lookup(self, ip_address: str) -> dict:
        self.calls.append(ip_address)
        if self.fail:
            raise UpstreamError("IP lookup provider request failed")
        return {
            "ip": ip_address,
            "city": "Mountain View",
            "country_name": "United States",
            "org": "Google LLC",
            "timezone": "America/Los_Angeles",
        }


class FakePayments:
    def __init__(self):
        self.invoices = []
        self.status_queries = []

    async def create_invoice(self, *, amount, order_id, currency, callback_url):
        self.invoices.append({
            "amount": amount,
            "order_id": order_id,
            "currency": currency,
            "callback_url": callback_url,
        })
        return {
            "status": "success",
            "pay_url": f"https://pay.cryptocloud.plus/{order_id}",
            "invoice_id": "INV-TEST-1",
            "expire_at": "2026-10-20 12:00:00",
        }

    async def invoice_status(self, order_id: str):
        self.status_queries.append(order_id)
        return {"status": "success", "status_invoice": "paid", "order_id": order_id}


@pytest_asyncio.fixture
async def storage():
    engine = build_engine(":memory:")
    await create_tables(engine)
    ledger = LedgerStorage(build_sessionmaker(engine), single_connection=True)
    await ledger.seed_catalog()
    yield ledger
    await engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_PATH=":memory:",
        TELEGRAM_BOT_TOKEN=BOT_TOKEN,
        ALLOW_DEMO_IDENTITY=False,
        SEED_DEMO_DATA=False,
        PUBLIC_BASE_URL="https://wallet.example",
    )


@pytest.fixture
def fake_ip_lookup():
    return FakeIpLookup()


@pytest.fixture
def fake_payments():
    return FakePayments()


@pytest.fixture
def client(settings, fake_ip_lookup, fake_payments):
    app = create_app(settings)
    app.dependency_overrides[get_ip_lookup] = lambda: fake_ip_lookup
    app.dependency_overrides[get_payments] = lambda: fake_payments
    app.dependency_overrides[get_phone_lookup] = lambda: SyntheticPhoneLookup(random.Random(7))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def ledger(client) -> LedgerStorage:
    return client.app.state.storage


@pytest.fixture
def user(client):
    resp = client.post("/api/auth", json={"initData": make_init_data()})
    assert resp.status_code == 200
    return resp.json()


def credit(client, user_id: int, amount: str, order_id: str | None = None):
    order_id = order_id or f"{user_id}_1700000000000"
    resp = client.post(
        "/api/topup/callback",
        json={"order_id": order_id, "amount": amount, "status": "success"},
    )
    assert resp.status_code == 200
    return order_id
