from schemas.base import ApiModel, Money


class ServiceResponse(ApiModel):
    id: int
    name: str
    description: str
    price: Money
    icon: str
    available: bool
    kind: str


class PurchaseServiceRequest(ApiModel):
    service_id: int
    user_id: int
