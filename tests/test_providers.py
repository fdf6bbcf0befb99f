import json
import random
from decimal import Decimal

import httpx
import pytest

from app.errors import UpstreamError
from app.services.lookups import (
    IpApiClient,
    SyntheticPhoneLookup,
    ip_check_from_payload,
    phone_check_from_payload,
)
from app.services.payments import CryptoCloudClient


def cryptocloud(handler) -> CryptoCloudClient:
    return CryptoCloudClient(
        "https://api.cryptocloud.test/v1/",
        "secret-key",
        "SHOP1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_create_invoice_request():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "success", "pay_url": "https://pay/1", "invoice_id": "INV1"})

    data = await cryptocloud(handler).create_invoice(
        amount=Decimal("25"),
        order_id="3_1700000000000",
        currency="USDT",
        callback_url="https://wallet.example/api/topup/callback",
    )

    assert data == {"status": "success", "pay_url": "https://pay/1", "invoice_id": "INV1"}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.cryptocloud.test/v1/invoice/create"
    assert seen["auth"] == "Bearer secret-key"
    assert seen["body"] == {
        "shop_id": "SHOP1",
        "amount": 25.0,
        "order_id": "3_1700000000000",
        "currency": "USDT",
        "url_callback": "https://wallet.example/api/topup/callback",
    }


@pytest.mark.asyncio
async def test_invoice_status_request():
    def handler(request: httpx.Request):
        assert request.url.path == "/v1/invoice/status"
        assert request.url.params["shop_id"] == "SHOP1"
        assert request.url.params["order_id"] == "3_1"
        return httpx.Response(200, json={"status": "success", "status_invoice": "created"})

    assert await cryptocloud(handler).invoice_status("3_1") == {"status": "success", "status_invoice": "created"}


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"status": "error"}),
    httpx.Response(200, text="<html>maintenance</html>"),
])
async def test_payment_provider_failures(response):
    with pytest.raises(UpstreamError):
        await cryptocloud(lambda request: response).invoice_status("3_1")


@pytest.mark.asyncio
async def test_payment_provider_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        await cryptocloud(handler).invoice_status("3_1")


@pytest.mark.asyncio
async def test_ip_lookup_returns_raw_payload():
    payload = {"ip": "8.8.8.8", "city": "Mountain View", "country_name": "United States", "org": "GOOGLE"}

    def handler(request: httpx.Request):
        assert str(request.url) == "https://ipapi.test/8.8.8.8/json/"
        return httpx.Response(200, json=payload)

    client = IpApiClient("https://ipapi.test/", transport=httpx.MockTransport(handler))
    data = await client.lookup("8.8.8.8")

    assert data == payload
    check = ip_check_from_payload("8.8.8.8", data)
    assert (check.country, check.city, check.isp) == ("United States", "Mountain View", "GOOGLE")
    assert check.is_spam is False and check.is_blacklisted is False
    assert check.details == payload


@pytest.mark.asyncio
async def test_ip_lookup_error_payload():
    def handler(request):
        return httpx.Response(200, json={"ip": "10.0.0.1", "error": True, "reason": "Reserved IP Address"})

    client = IpApiClient("https://ipapi.test", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError, match="Reserved IP Address"):
        await client.lookup("10.0.0.1")


@pytest.mark.asyncio
async def test_synthetic_phone_lookup():
    lookup = SyntheticPhoneLookup(random.Random(3), locale="en")

    data = await lookup.lookup("+16502530000")

    assert data["valid"] is True
    assert data["country"] == "United States"
    assert 20 <= data["fraud_score"] <= 99
    assert data["is_spam"] == (data["fraud_score"] > 75)
    check = phone_check_from_payload("+16502530000", data)
    assert check.fraud_score == data["fraud_score"]
    assert check.is_active is True


@pytest.mark.asyncio
async def test_synthetic_phone_lookup_is_seedable():
    first = await SyntheticPhoneLookup(random.Random(11)).lookup("+79123456789")
    second = await SyntheticPhoneLookup(random.Random(11)).lookup("+79123456789")

    assert first == second


@pytest.mark.asyncio
async def test_synthetic_phone_lookup_unparseable_number():
    data = await SyntheticPhoneLookup(random.Random(1)).lookup("+99912345678")

    assert data["valid"] is False
    assert data["country"] is None
    assert data["is_active"] is False
