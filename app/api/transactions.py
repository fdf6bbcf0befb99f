from fastapi import APIRouter, Depends, Query

from app.deps import get_storage
from app.errors import NotFound
from app.storage.ledger import LedgerStorage
from models.transaction import TransactionType
from schemas.transaction import TransactionDetailResponse, TransactionResponse

router = APIRouter()


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(user_id: int = Query(..., alias="userId"), storage: LedgerStorage = Depends(get_storage)):
    return await storage.list_user_transactions(user_id)


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
async def get_transaction_detail(transaction_id: int, storage: LedgerStorage = Depends(get_storage)):
    transaction = await storage.get_transaction(transaction_id)
    if not transaction:
        raise NotFound("Transaction not found")

    service = ip_check = phone_check = None
    if transaction.type == TransactionType.PURCHASE.value:
        if transaction.service_id:
            service = await storage.get_service(transaction.service_id)
        ip_check = await storage.get_ip_check_for_transaction(transaction.id)
        if not ip_check:
            phone_check = await storage.get_phone_check_for_transaction(transaction.id)

    return {
        "transaction": transaction,
        "service": service,
        "ip_check": ip_check,
        "phone_check": phone_check,
    }
