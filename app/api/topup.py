import logging
import time
from decimal import Decimal

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from app.config import Settings
from app.deps import get_payments, get_settings, get_storage, require_user
from app.errors import NotFound, ValidationError
from app.services.payments import CryptoCloudClient
from app.storage.ledger import LedgerStorage, quantize_money
from app.ws import publish_balance
from schemas.topup import TopUpCallback, TopUpRequest

router = APIRouter()
logger = logging.getLogger("wallet.topup")

PAID_STATUS = "success"


def build_order_id(user_id: int) -> str:
    return f"{user_id}_{int(time.time() * 1000)}"


def parse_order_user_id(order_id: str) -> int:
    prefix = (order_id or "").split("_", 1)[0]
    if not prefix.isdigit():
        raise ValidationError("Malformed order id")
    return int(prefix)


@router.post("/create")
async def create_invoice(
    payload: TopUpRequest,
    request: Request,
    storage: LedgerStorage = Depends(get_storage),
    payments: CryptoCloudClient = Depends(get_payments),
    settings: Settings = Depends(get_settings),
):
    if payload.amount < settings.TOPUP_MIN_AMOUNT:
        raise ValidationError(f"Minimum top-up amount is {settings.TOPUP_MIN_AMOUNT}")
    user = await require_user(storage, payload.user_id)

    base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
    return await payments.create_invoice(
        amount=quantize_money(payload.amount),
        order_id=build_order_id(user.id),
        currency=settings.TOPUP_CURRENCY,
        callback_url=f"{base_url.rstrip('/')}/api/topup/callback",
    )


async def _read_callback(request: Request) -> TopUpCallback:
    # 支付平台的回调可能是表单，也可能是 JSON
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            raw = await request.json()
        else:
            raw = dict(await request.form())
        return TopUpCallback.model_validate(raw)
    except (PydanticValidationError, ValueError) as exc:
        logger.warning("malformed payment callback: %s", exc)
        raise ValidationError("Invalid callback payload")


@router.post("/callback")
async def payment_callback(request: Request, storage: LedgerStorage = Depends(get_storage)):
    callback = await _read_callback(request)
    if callback.status != PAID_STATUS:
        logger.info("payment callback order_id=%s status=%s ignored", callback.order_id, callback.status)
        return {"success": True}

    user_id = parse_order_user_id(callback.order_id)
    amount = quantize_money(callback.amount)
    if amount <= Decimal("0"):
        raise ValidationError("Invalid callback amount")
    user = await storage.get_user(user_id)
    if not user:
        logger.error("User not found for order: %s", callback.order_id)
        raise NotFound("User not found")

    result = await storage.record_topup(user.id, amount, callback.order_id)
    if result.created:
        await publish_balance(result.user, "topup")
    return {"success": True}


@router.get("/status/{order_id}")
async def invoice_status(order_id: str, payments: CryptoCloudClient = Depends(get_payments)):
    return await payments.invoice_status(order_id)
