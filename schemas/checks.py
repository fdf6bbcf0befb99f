from typing import Any, Optional

from schemas.base import ApiModel, Money, UtcDatetime


class IpCheckRequest(ApiModel):
    ip_address: str
    user_id: int


class IpCheckResponse(ApiModel):
    id: int
    user_id: int
    transaction_id: Optional[int] = None
    ip_address: str
    country: Optional[str] = None
    city: Optional[str] = None
    isp: Optional[str] = None
    is_spam: Optional[bool] = None
    is_blacklisted: Optional[bool] = None
    details: Optional[Any] = None
    created_at: UtcDatetime


class IpCheckResult(ApiModel):
    ip_check: IpCheckResponse
    user_balance: Money
    transaction_id: int


class PhoneCheckRequest(ApiModel):
    phone_number: str
    user_id: int


class PhoneCheckResponse(ApiModel):
    id: int
    user_id: int
    transaction_id: Optional[int] = None
    phone_number: str
    country: Optional[str] = None
    operator: Optional[str] = None
    is_active: Optional[bool] = None
    is_spam: Optional[bool] = None
    is_virtual: Optional[bool] = None
    fraud_score: Optional[int] = None
    details: Optional[Any] = None
    created_at: UtcDatetime


class PhoneCheckResult(ApiModel):
    phone_check: PhoneCheckResponse
    user_balance: Money
    transaction_id: int
