from fastapi import APIRouter, Depends, Query

from app.deps import ensure_can_purchase, get_ip_lookup, get_storage, require_user
from app.errors import NotFound, ValidationError
from app.services.lookups import IpApiClient, ip_check_from_payload
from app.storage.ledger import LedgerStorage
from app.utils.validators import is_valid_ip_address
from app.ws import publish_balance
from models.service import ServiceKind
from schemas.checks import IpCheckRequest, IpCheckResponse, IpCheckResult

router = APIRouter()

IP_CHECK_DESCRIPTION = "Проверка IP адреса"


@router.post("/check", response_model=IpCheckResult)
async def buy_ip_check(
    payload: IpCheckRequest,
    storage: LedgerStorage = Depends(get_storage),
    ip_lookup: IpApiClient = Depends(get_ip_lookup),
):
    ip_address = payload.ip_address.strip()
    if not is_valid_ip_address(ip_address):
        raise ValidationError("Invalid IP address")

    user = await require_user(storage, payload.user_id)
    service = await storage.get_service_by_kind(ServiceKind.IP_CHECK)
    if not service:
        raise NotFound("IP checking service not found")
    ensure_can_purchase(user, service)

    data = await ip_lookup.lookup(ip_address)
    result = await storage.record_purchase(
        user.id,
        service,
        check=ip_check_from_payload(ip_address, data),
        description=IP_CHECK_DESCRIPTION,
    )
    await publish_balance(result.user, "purchase")
    return {
        "ip_check": result.check,
        "user_balance": result.user.balance,
        "transaction_id": result.transaction.id,
    }


@router.get("/checks", response_model=list[IpCheckResponse])
async def list_ip_checks(user_id: int = Query(..., alias="userId"), storage: LedgerStorage = Depends(get_storage)):
    return await storage.list_user_ip_checks(user_id)
