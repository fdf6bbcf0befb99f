import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from app.deps import get_storage, get_verifier
from app.errors import ValidationError
from app.security import LaunchDataVerifier, extract_identity
from app.storage.ledger import LedgerStorage
from schemas.user import AuthRequest, UserResponse

router = APIRouter()
logger = logging.getLogger("wallet.security")


@router.post("", response_model=UserResponse)
async def authenticate(
    payload: AuthRequest,
    storage: LedgerStorage = Depends(get_storage),
    verifier: LaunchDataVerifier = Depends(get_verifier),
):
    if not payload.init_data and not verifier.is_demo_payload(payload.init_data):
        raise ValidationError("Init data is required")
    identity = extract_identity(verifier.verify(payload.init_data))

    user = await storage.get_user_by_telegram_id(identity.id)
    if user:
        return user
    try:
        return await storage.create_user({
            "telegram_id": identity.id,
            "username": identity.username,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "photo_url": identity.photo_url,
        })
    except IntegrityError:
        # 并发登录时另一请求已建好用户
        user = await storage.get_user_by_telegram_id(identity.id)
        if not user:
            raise
        logger.info("concurrent first login telegram_id=%s resolved to user %s", identity.id, user.id)
        return user
