import enum
from sqlalchemy import Column, Integer, String, Boolean, Numeric, Text
from app.database import Base


class ServiceKind(str, enum.Enum):
    IP_CHECK = "ip_check"
    PHONE_CHECK = "phone_check"
    GENERIC = "generic"


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    icon = Column(String, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    kind = Column(String, nullable=False, default=ServiceKind.GENERIC.value, index=True)
