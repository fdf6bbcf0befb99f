from typing import Optional

from schemas.base import ApiModel, Money, UtcDatetime
from schemas.checks import IpCheckResponse, PhoneCheckResponse
from schemas.service import ServiceResponse


class TransactionResponse(ApiModel):
    id: int
    user_id: int
    type: str
    amount: Money
    description: str
    service_id: Optional[int] = None
    reference: Optional[str] = None
    created_at: UtcDatetime


class TransactionDetailResponse(ApiModel):
    transaction: TransactionResponse
    service: Optional[ServiceResponse] = None
    ip_check: Optional[IpCheckResponse] = None
    phone_check: Optional[PhoneCheckResponse] = None


class PurchaseResponse(ApiModel):
    success: bool
    message: Optional[str] = None
    transaction: Optional[TransactionResponse] = None
    user_balance: Optional[Money] = None
