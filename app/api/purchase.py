from fastapi import APIRouter, Depends

from app.deps import ensure_can_purchase, get_storage, require_user
from app.errors import NotFound
from app.storage.ledger import LedgerStorage
from app.ws import publish_balance
from models.service import ServiceKind
from schemas.service import PurchaseServiceRequest
from schemas.transaction import PurchaseResponse

router = APIRouter()

# 查询类服务在各自的接口里扣费，这里不重复扣
DEDICATED_ENDPOINTS = {
    ServiceKind.IP_CHECK.value: "/api/ip/check",
    ServiceKind.PHONE_CHECK.value: "/api/phone/check",
}


@router.post("/purchase", response_model=PurchaseResponse, response_model_exclude_none=True)
async def purchase_service(payload: PurchaseServiceRequest, storage: LedgerStorage = Depends(get_storage)):
    user = await require_user(storage, payload.user_id)
    service = await storage.get_service(payload.service_id)
    if not service:
        raise NotFound("Service not found")
    ensure_can_purchase(user, service)

    endpoint = DEDICATED_ENDPOINTS.get(service.kind)
    if endpoint:
        return {"success": True, "message": f"Please use the {endpoint} endpoint to process this service"}

    result = await storage.record_purchase(user.id, service)
    await publish_balance(result.user, "purchase")
    return {"success": True, "transaction": result.transaction, "user_balance": result.user.balance}
