from typing import Optional

from pydantic import BaseModel

from schemas.base import ApiModel, Money, UtcDatetime


class AuthRequest(ApiModel):
    init_data: str = ""


class TelegramIdentity(BaseModel):
    id: int
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    photo_url: Optional[str] = None


class UserResponse(ApiModel):
    id: int
    telegram_id: int
    username: Optional[str] = None
    first_name: str
    last_name: Optional[str] = None
    photo_url: Optional[str] = None
    balance: Money
    created_at: UtcDatetime
