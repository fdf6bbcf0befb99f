from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from schemas.base import ApiModel


class TopUpRequest(ApiModel):
    amount: Decimal
    user_id: int


class TopUpCallback(BaseModel):
    # 字段名由支付平台决定，保持 snake_case
    order_id: str
    amount: Decimal = Decimal("0")
    status: str = ""

    model_config = ConfigDict(coerce_numbers_to_str=True)
