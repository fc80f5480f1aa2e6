import secrets
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.product_service.models import Store

from .models import Order


def generate_order_number(today: date | None = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"ORD-{today:%Y%m%d}-{secrets.token_hex(4).upper()}"


class OrderRepository:

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Optional[Order]:
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def get_order_for_update(db: AsyncSession, order_id: int) -> Optional[Order]:
        """Row-locks the order (FOR UPDATE is a no-op on SQLite)."""
        result = await db.execute(
            select(Order).where(Order.id == order_id).with_for_update().execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_by_payment_intent(db: AsyncSession, payment_intent_id: str | None) -> Optional[Order]:
        # `== None` would compile to IS NULL and match any order without an intent
        if not payment_intent_id:
            return None
        result = await db.execute(
            select(Order)
            .where(Order.payment_intent_id == payment_intent_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_store_order_for_update(db: AsyncSession, order_id: int, owner_id: int) -> Optional[Order]:
        """Row-locks an order only if it belongs to a store owned by `owner_id`."""
        result = await db.execute(
            select(Order)
            .join(Store, Store.id == Order.store_id)
            .where(Order.id == order_id, Store.owner_id == owner_id)
            .with_for_update(of=Order)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_by_order_number(db: AsyncSession, order_number: str) -> Optional[Order]:
        result = await db.execute(select(Order).where(Order.order_number == order_number))
        return result.scalars().first()

    @staticmethod
    async def order_number_exists(db: AsyncSession, order_number: str) -> bool:
        result = await db.execute(select(Order.id).where(Order.order_number == order_number))
        return result.first() is not None

    @staticmethod
    async def new_order_number(db: AsyncSession, taken: set[str]) -> str:
        while True:
            candidate = generate_order_number()
            if candidate not in taken and not await OrderRepository.order_number_exists(db, candidate):
                taken.add(candidate)
                return candidate

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        status: str | None,
        page: int,
        per_page: int,
    ) -> tuple[list[Order], int]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == status)
        return await OrderRepository._paginate(db, stmt, page, per_page)

    @staticmethod
    async def list_for_store_owner(
        db: AsyncSession,
        owner_id: int,
        status: str | None,
        search: str | None,
        page: int,
        per_page: int,
    ) -> tuple[list[Order], int]:
        stmt = select(Order).join(Store, Store.id == Order.store_id).where(Store.owner_id == owner_id)
        if status:
            stmt = stmt.where(Order.status == status)
        if search:
            term = f"%{search.strip()}%"
            stmt = stmt.where(or_(Order.order_number.ilike(term), Order.email.ilike(term)))
        return await OrderRepository._paginate(db, stmt, page, per_page)

    @staticmethod
    async def search(
        db: AsyncSession,
        *,
        status: str | None = None,
        payment_status: str | None = None,
        store_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        search: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Order], int]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if payment_status:
            stmt = stmt.where(Order.payment_status == payment_status)
        if store_id:
            stmt = stmt.where(Order.store_id == store_id)
        if start_date:
            stmt = stmt.where(Order.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date:
            next_day = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            stmt = stmt.where(Order.created_at < next_day)
        if search:
            term = f"%{search.strip()}%"
            stmt = stmt.outerjoin(User, User.id == Order.user_id).where(
                or_(
                    Order.order_number.ilike(term),
                    Order.email.ilike(term),
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                )
            )
        return await OrderRepository._paginate(db, stmt, page, per_page)

    @staticmethod
    async def _paginate(db: AsyncSession, stmt, page: int, per_page: int) -> tuple[list[Order], int]:
        total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await db.execute(
            stmt.order_by(Order.created_at.desc(), Order.id.desc())
            .limit(per_page)
            .offset((page - 1) * per_page)
        )
        return list(result.scalars().all()), total or 0

    # --- Aggregates for the admin dashboard ---

    @staticmethod
    async def count(db: AsyncSession, since: datetime | None = None) -> int:
        stmt = select(func.count(Order.id))
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        return await db.scalar(stmt) or 0

    @staticmethod
    async def revenue(db: AsyncSession, payment_status: str, since: datetime | None = None):
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.payment_status == payment_status)
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        return await db.scalar(stmt)

    @staticmethod
    async def breakdown(db: AsyncSession, column) -> dict[str, int]:
        result = await db.execute(select(column, func.count(Order.id)).group_by(column))
        return {key: count for key, count in result.all()}

    @staticmethod
    async def daily_counts(db: AsyncSession, since: datetime) -> list[tuple[str, int]]:
        day = func.date(Order.created_at)
        result = await db.execute(
            select(day, func.count(Order.id)).where(Order.created_at >= since).group_by(day).order_by(day)
        )
        return [(str(d), count) for d, count in result.all()]

    @staticmethod
    async def top_stores(db: AsyncSession, limit: int = 10) -> list[tuple[int, str, int]]:
        order_count = func.count(Order.id)
        result = await db.execute(
            select(Store.id, Store.name, order_count)
            .join(Order, Order.store_id == Store.id)
            .group_by(Store.id, Store.name)
            .order_by(order_count.desc(), Store.id)
            .limit(limit)
        )
        return [(store_id, name, count) for store_id, name, count in result.all()]
