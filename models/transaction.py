import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, UniqueConstraint
from app.database import Base
from models.user import utcnow


class TransactionType(str, enum.Enum):
    TOPUP = "topup"
    PURCHASE = "purchase"


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # 同一支付订单只能入账一次
        UniqueConstraint("reference", name="uq_transaction_reference"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    type = Column(String, nullable=False)  # topup/purchase
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    reference = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
