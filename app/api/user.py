from fastapi import APIRouter, Depends, Query

from app.deps import get_storage
from app.errors import NotFound
from app.storage.ledger import LedgerStorage
from schemas.user import UserResponse

router = APIRouter()


@router.get("", response_model=UserResponse)
async def get_user(telegram_id: int = Query(..., alias="telegramId"), storage: LedgerStorage = Depends(get_storage)):
    user = await storage.get_user_by_telegram_id(telegram_id)
    if not user:
        raise NotFound("User not found")
    return user
