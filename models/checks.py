from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON
from app.database import Base
from models.user import utcnow


class IpCheck(Base):
    __tablename__ = "ip_checks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), unique=True, nullable=True)
    ip_address = Column(String, nullable=False)
    country = Column(String, nullable=True)
    city = Column(String, nullable=True)
    isp = Column(String, nullable=True)
    is_spam = Column(Boolean, nullable=True)
    is_blacklisted = Column(Boolean, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class PhoneCheck(Base):
    __tablename__ = "phone_checks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), unique=True, nullable=True)
    phone_number = Column(String, nullable=False)
    country = Column(String, nullable=True)
    operator = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=True)
    is_spam = Column(Boolean, nullable=True)
    is_virtual = Column(Boolean, nullable=True)
    fraud_score = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
