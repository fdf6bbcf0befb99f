from fastapi import Request

from app.config import Settings
from app.errors import InsufficientBalance, NotFound, ValidationError
from app.security import LaunchDataVerifier
from app.services.lookups import IpApiClient, SyntheticPhoneLookup
from app.services.payments import CryptoCloudClient
from app.storage.ledger import LedgerStorage
from models.service import Service
from models.user import User


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> LedgerStorage:
    return request.app.state.storage


def get_verifier(request: Request) -> LaunchDataVerifier:
    return request.app.state.verifier


def get_payments(request: Request) -> CryptoCloudClient:
    return request.app.state.payments


def get_ip_lookup(request: Request) -> IpApiClient:
    return request.app.state.ip_lookup


def get_phone_lookup(request: Request) -> SyntheticPhoneLookup:
    return request.app.state.phone_lookup


async def require_user(storage: LedgerStorage, user_id: int) -> User:
    user = await storage.get_user(user_id)
    if not user:
        raise NotFound("User not found")
    return user


def ensure_can_purchase(user: User, service: Service):
    if not service.available:
        raise ValidationError("Service is not available")
    if user.balance < service.price:
        raise InsufficientBalance()
