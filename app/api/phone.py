from fastapi import APIRouter, Depends, Query

from app.deps import ensure_can_purchase, get_phone_lookup, get_storage, require_user
from app.errors import NotFound, ValidationError
from app.services.lookups import SyntheticPhoneLookup, phone_check_from_payload
from app.storage.ledger import LedgerStorage
from app.utils.validators import normalize_phone_number
from app.ws import publish_balance
from models.service import ServiceKind
from schemas.checks import PhoneCheckRequest, PhoneCheckResponse, PhoneCheckResult

router = APIRouter()

PHONE_CHECK_DESCRIPTION = "Проверка номера телефона"


@router.post("/check", response_model=PhoneCheckResult)
async def buy_phone_check(
    payload: PhoneCheckRequest,
    storage: LedgerStorage = Depends(get_storage),
    phone_lookup: SyntheticPhoneLookup = Depends(get_phone_lookup),
):
    phone_number = normalize_phone_number(payload.phone_number)
    if not phone_number:
        raise ValidationError("Invalid phone number")

    user = await require_user(storage, payload.user_id)
    service = await storage.get_service_by_kind(ServiceKind.PHONE_CHECK)
    if not service:
        raise NotFound("Phone checking service not found")
    ensure_can_purchase(user, service)

    data = await phone_lookup.lookup(phone_number)
    result = await storage.record_purchase(
        user.id,
        service,
        check=phone_check_from_payload(phone_number, data),
        description=PHONE_CHECK_DESCRIPTION,
    )
    await publish_balance(result.user, "purchase")
    return {
        "phone_check": result.check,
        "user_balance": result.user.balance,
        "transaction_id": result.transaction.id,
    }


@router.get("/checks", response_model=list[PhoneCheckResponse])
async def list_phone_checks(user_id: int = Query(..., alias="userId"), storage: LedgerStorage = Depends(get_storage)):
    return await storage.list_user_phone_checks(user_id)
