import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.errors import InsufficientBalance, NotFound
from models.checks import IpCheck, PhoneCheck
from models.service import Service, ServiceKind
from models.transaction import Transaction, TransactionType
from models.user import User

logger = logging.getLogger("wallet.ledger")

TOPUP_DESCRIPTION = "Пополнение баланса"

CENT = Decimal("0.01")

DEFAULT_SERVICES = [
    {
        "name": "Проверка IP адреса",
        "description": "Проверка IP на спам, блэклисты и определение геоданных",
        "price": Decimal("0.20"),
        "icon": "public",
        "available": True,
        "kind": ServiceKind.IP_CHECK.value,
    },
    {
        "name": "Проверка номера телефона",
        "description": "Проверка номера телефона на мошенничество и наличие в базах спам-номеров",
        "price": Decimal("0.25"),
        "icon": "phone",
        "available": True,
        "kind": ServiceKind.PHONE_CHECK.value,
    },
]


def quantize_money(value) -> Decimal:
    """Round to whole cents; every amount is rounded before it touches a balance."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PurchaseResult:
    user: User
    transaction: Transaction
    check: Optional[IpCheck | PhoneCheck] = None


@dataclass
class TopupResult:
    user: User
    transaction: Transaction
    created: bool


class LedgerStorage:
    """Users, catalog, transactions and lookup results.

    The plain ``create_*``/``get_*`` calls are independent units of work.
    Balance changes go through :meth:`record_purchase` and
    :meth:`record_topup`, which hold a per-user lock and write the balance
    and its ledger entry in one database transaction.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession], *, single_connection: bool = False):
        self._sessions = sessions
        self._user_locks: dict[int, asyncio.Lock] = {}
        # 单连接（内存库）下不同用户的事务也会互相交错，只能全局串行
        self._global_lock = asyncio.Lock() if single_connection else None

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        if self._global_lock is not None:
            return self._global_lock
        return self._user_locks.setdefault(user_id, asyncio.Lock())

    @asynccontextmanager
    async def _unit(self):
        async with self._sessions() as session:
            async with session.begin():
                yield session

    async def _add(self, obj):
        async with self._unit() as session:
            session.add(obj)
        return obj

    # 用户

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._sessions() as session:
            return await session.get(User, user_id)

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        async with self._sessions() as session:
            result = await session.execute(select(User).where(User.telegram_id == telegram_id))
            return result.scalar_one_or_none()

    async def create_user(self, data: dict) -> User:
        user = User(
            telegram_id=data["telegram_id"],
            username=data.get("username"),
            first_name=data["first_name"],
            last_name=data.get("last_name"),
            photo_url=data.get("photo_url"),
            balance=Decimal("0"),
        )
        await self._add(user)
        logger.info("user created id=%s telegram_id=%s", user.id, user.telegram_id)
        return user

    async def update_user_balance(self, user_id: int, new_balance: Decimal) -> Optional[User]:
        async with self._unit() as session:
            user = await session.get(User, user_id)
            if not user:
                return None
            user.balance = quantize_money(new_balance)
        return user

    # 服务目录

    async def list_services(self) -> list[Service]:
        async with self._sessions() as session:
            result = await session.execute(select(Service).order_by(Service.id))
            return list(result.scalars().all())

    async def get_service(self, service_id: int) -> Optional[Service]:
        async with self._sessions() as session:
            return await session.get(Service, service_id)

    async def get_service_by_kind(self, kind: ServiceKind) -> Optional[Service]:
        async with self._sessions() as session:
            result = await session.execute(
                select(Service).where(Service.kind == kind.value).order_by(Service.id).limit(1)
            )
            return result.scalar_one_or_none()

    async def create_service(self, data: dict) -> Service:
        data = dict(data, price=quantize_money(data["price"]))
        return await self._add(Service(**data))

    async def update_service(self, service_id: int, **changes) -> Optional[Service]:
        async with self._unit() as session:
            service = await session.get(Service, service_id)
            if not service:
                return None
            for key, value in changes.items():
                setattr(service, key, value)
        return service

    async def seed_catalog(self) -> list[Service]:
        if await self.list_services():
            return []
        created = [await self.create_service(dict(item)) for item in DEFAULT_SERVICES]
        logger.info("seeded %d catalog services", len(created))
        return created

    # 交易

    async def create_transaction(self, data: dict) -> Transaction:
        return await self._add(Transaction(**data))

    async def list_user_transactions(self, user_id: int) -> list[Transaction]:
        async with self._sessions() as session:
            result = await session.execute(
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            )
            return list(result.scalars().all())

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        async with self._sessions() as session:
            return await session.get(Transaction, transaction_id)

    async def get_transaction_by_reference(self, reference: str) -> Optional[Transaction]:
        async with self._sessions() as session:
            result = await session.execute(select(Transaction).where(Transaction.reference == reference))
            return result.scalar_one_or_none()

    # 查询记录

    async def create_ip_check(self, data: dict) -> IpCheck:
        return await self._add(IpCheck(**data))

    async def list_user_ip_checks(self, user_id: int) -> list[IpCheck]:
        return await self._list_for_user(IpCheck, user_id)

    async def get_ip_check(self, check_id: int) -> Optional[IpCheck]:
        async with self._sessions() as session:
            return await session.get(IpCheck, check_id)

    async def get_ip_check_for_transaction(self, transaction_id: int) -> Optional[IpCheck]:
        return await self._check_for_transaction(IpCheck, transaction_id)

    async def create_phone_check(self, data: dict) -> PhoneCheck:
        return await self._add(PhoneCheck(**data))

    async def list_user_phone_checks(self, user_id: int) -> list[PhoneCheck]:
        return await self._list_for_user(PhoneCheck, user_id)

    async def get_phone_check(self, check_id: int) -> Optional[PhoneCheck]:
        async with self._sessions() as session:
            return await session.get(PhoneCheck, check_id)

    async def get_phone_check_for_transaction(self, transaction_id: int) -> Optional[PhoneCheck]:
        return await self._check_for_transaction(PhoneCheck, transaction_id)

    async def _list_for_user(self, model, user_id: int):
        async with self._sessions() as session:
            result = await session.execute(
                select(model).where(model.user_id == user_id).order_by(model.created_at.desc(), model.id.desc())
            )
            return list(result.scalars().all())

    async def _check_for_transaction(self, model, transaction_id: int):
        async with self._sessions() as session:
            result = await session.execute(select(model).where(model.transaction_id == transaction_id))
            return result.scalar_one_or_none()

    # 余额变动

    async def _shift_balance(self, session: AsyncSession, user_id: int, delta: Decimal) -> User:
        # 余额在 SQL 中原子更新，扣款时附带余额条件，多进程下也不会超支
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(balance=func.round(User.balance + delta, 2))
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stmt = stmt.where(User.balance >= -delta)
        result = await session.execute(stmt)
        user = (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            raise NotFound("User not found")
        if result.rowcount == 0:
            raise InsufficientBalance()
        return user

    async def record_purchase(
        self,
        user_id: int,
        service: Service,
        *,
        check: Optional[IpCheck | PhoneCheck] = None,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> PurchaseResult:
        """Debit ``service.price`` and append the purchase entry atomically.

        The debit is conditional on the stored balance, so callers that
        pre-checked it on a stale copy still cannot overdraw.
        """
        price = quantize_money(service.price)
        async with self._lock_for(user_id):
            async with self._unit() as session:
                user = await self._shift_balance(session, user_id, -price)
                transaction = Transaction(
                    user_id=user.id,
                    type=TransactionType.PURCHASE.value,
                    amount=price,
                    description=description or service.name,
                    service_id=service.id,
                )
                if created_at is not None:
                    transaction.created_at = created_at
                session.add(transaction)
                await session.flush()
                if check is not None:
                    check.user_id = user.id
                    check.transaction_id = transaction.id
                    if created_at is not None:
                        check.created_at = created_at
                    session.add(check)
        logger.info(
            "purchase user_id=%s service_id=%s amount=%s balance=%s transaction_id=%s",
            user.id, service.id, price, user.balance, transaction.id,
        )
        return PurchaseResult(user=user, transaction=transaction, check=check)

    async def record_topup(
        self,
        user_id: int,
        amount: Decimal,
        reference: str,
        *,
        description: str = TOPUP_DESCRIPTION,
        created_at: Optional[datetime] = None,
    ) -> TopupResult:
        """Credit ``amount`` once per ``reference``; replays return the first entry."""
        amount = quantize_money(amount)
        async with self._lock_for(user_id):
            existing = await self.get_transaction_by_reference(reference)
            if existing:
                return await self._duplicate_topup(user_id, existing)
            try:
                async with self._unit() as session:
                    user = await self._shift_balance(session, user_id, amount)
                    transaction = Transaction(
                        user_id=user.id,
                        type=TransactionType.TOPUP.value,
                        amount=amount,
                        description=description,
                        reference=reference,
                    )
                    if created_at is not None:
                        transaction.created_at = created_at
                    session.add(transaction)
            except IntegrityError:
                # 另一个进程已写入同一订单
                existing = await self.get_transaction_by_reference(reference)
                if not existing:
                    raise
                return await self._duplicate_topup(user_id, existing)
        logger.info(
            "topup user_id=%s amount=%s balance=%s reference=%s",
            user.id, amount, user.balance, reference,
        )
        return TopupResult(user=user, transaction=transaction, created=True)

    async def _duplicate_topup(self, user_id: int, existing: Transaction) -> TopupResult:
        logger.info("topup replay ignored reference=%s transaction_id=%s", existing.reference, existing.id)
        user = await self.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return TopupResult(user=user, transaction=existing, created=False)

    async def seed_demo_data(self, telegram_id: int = 12345678) -> Optional[User]:
        """Demo user with a short history, for local runs of the mini app."""
        if await self.get_user_by_telegram_id(telegram_id):
            return None
        user = await self.create_user({
            "telegram_id": telegram_id,
            "username": "demo_user",
            "first_name": "Demo",
            "last_name": "User",
        })
        ip_service = await self.get_service_by_kind(ServiceKind.IP_CHECK)
        phone_service = await self.get_service_by_kind(ServiceKind.PHONE_CHECK)
        now = datetime.now(timezone.utc)
        await self.record_topup(
            user.id, Decimal("50.00"), f"TG{telegram_id}", created_at=now - timedelta(days=7)
        )
        if ip_service:
            await self.record_purchase(
                user.id,
                ip_service,
                check=IpCheck(
                    ip_address="8.8.8.8",
                    country="США",
                    city="Маунтин-Вью",
                    isp="Google LLC",
                    is_spam=False,
                    is_blacklisted=False,
                    details={"hostname": "dns.google", "org": "Google LLC", "timezone": "America/Los_Angeles"},
                ),
                created_at=now - timedelta(days=5),
            )
        if phone_service:
            await self.record_purchase(
                user.id,
                phone_service,
                check=PhoneCheck(
                    phone_number="+79123456789",
                    country="Россия",
                    operator="МТС",
                    is_active=True,
                    is_spam=False,
                    is_virtual=False,
                    fraud_score=25,
                    details={"valid": True, "verified": True, "lastActivity": "2025-03-24"},
                ),
                created_at=now - timedelta(days=2),
            )
        return await self.get_user(user.id)
