from fastapi import APIRouter, Depends

from app.deps import get_storage
from app.storage.ledger import LedgerStorage
from schemas.service import ServiceResponse

router = APIRouter()


@router.get("", response_model=list[ServiceResponse])
async def list_services(storage: LedgerStorage = Depends(get_storage)):
    return await storage.list_services()
