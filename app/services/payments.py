import logging
from decimal import Decimal

import httpx

from app.errors import UpstreamError

logger = logging.getLogger("wallet.providers")


class CryptoCloudClient:
    """CryptoCloud invoice API (bearer-token auth)."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        shop_id: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.shop_id = shop_id
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.api_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.request(method, url, headers=self._headers(), **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("cryptocloud %s %s -> %s", method, path, exc.response.status_code)
            raise UpstreamError("Payment provider request failed") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("cryptocloud %s %s failed: %s", method, path, exc)
            raise UpstreamError("Payment provider request failed") from exc

    async def create_invoice(self, *, amount: Decimal, order_id: str, currency: str, callback_url: str) -> dict:
        payload = {
            "shop_id": self.shop_id,
            "amount": float(amount),
            "order_id": order_id,
            "currency": currency,
            "url_callback": callback_url,
        }
        data = await self._request("POST", "/invoice/create", json=payload)
        logger.info("invoice created order_id=%s amount=%s", order_id, amount)
        return data

    async def invoice_status(self, order_id: str) -> dict:
        return await self._request(
            "GET",
            "/invoice/status",
            params={"shop_id": self.shop_id, "order_id": order_id},
        )
