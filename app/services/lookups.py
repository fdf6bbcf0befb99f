import logging
import random

import httpx
import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberType, carrier, geocoder

from app.errors import UpstreamError
from models.checks import IpCheck, PhoneCheck

logger = logging.getLogger("wallet.providers")


class IpApiClient:
    """Geolocation lookup against ipapi.co (unauthenticated)."""

    def __init__(self, base_url: str, *, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self.transport = transport

    async def lookup(self, ip_address: str) -> dict:
        url = f"{self.base_url}/{ip_address}/json/"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("ip lookup %s failed: %s", ip_address, exc)
            raise UpstreamError("IP lookup provider request failed") from exc
        # ipapi.co 对保留地址等情况返回 200 + error 字段
        if not isinstance(data, dict) or data.get("error"):
            reason = data.get("reason") if isinstance(data, dict) else None
            logger.warning("ip lookup %s rejected: %s", ip_address, reason)
            raise UpstreamError(f"IP lookup failed: {reason or 'unknown error'}")
        return data


def ip_check_from_payload(ip_address: str, data: dict) -> IpCheck:
    return IpCheck(
        ip_address=ip_address,
        country=data.get("country_name"),
        city=data.get("city"),
        isp=data.get("org"),
        # 暂无信誉数据源
        is_spam=False,
        is_blacklisted=False,
        details=data,
    )


class SyntheticPhoneLookup:
    """Stand-in phone reputation provider.

    Country and operator come from the ``phonenumbers`` metadata; the fraud
    score and the spam/virtual flags are random.
    """

    def __init__(self, rng: random.Random | None = None, *, locale: str = "ru"):
        self.rng = rng or random.Random()
        self.locale = locale

    async def lookup(self, phone_number: str) -> dict:
        country = operator = number_type = None
        valid = False
        try:
            parsed = phonenumbers.parse(phone_number, None)
        except NumberParseException:
            parsed = None
        if parsed is not None:
            valid = phonenumbers.is_valid_number(parsed)
            country = geocoder.country_name_for_number(parsed, self.locale) or None
            operator = carrier.name_for_number(parsed, self.locale) or None
            number_type = phonenumbers.number_type(parsed)

        fraud_score = self.rng.randint(20, 99)
        return {
            "phone_number": phone_number,
            "valid": valid,
            "country": country,
            "operator": operator,
            "is_active": valid,
            "is_spam": fraud_score > 75,
            "is_virtual": number_type == PhoneNumberType.VOIP or self.rng.random() > 0.7,
            "fraud_score": fraud_score,
        }


def phone_check_from_payload(phone_number: str, data: dict) -> PhoneCheck:
    return PhoneCheck(
        phone_number=phone_number,
        country=data.get("country"),
        operator=data.get("operator"),
        is_active=data.get("is_active"),
        is_spam=data.get("is_spam"),
        is_virtual=data.get("is_virtual"),
        fraud_score=data.get("fraud_score"),
        details=data,
    )
