from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import ValidationError
from shared.utils import utcnow

from .models import Order
from .repository import OrderRepository
from .service import paginated
from .status import PaymentStatus, parse_status

MAX_PER_PAGE = 100
RECENT_DAYS = 30


class AdminOrderService:

    @staticmethod
    async def list_orders(
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
    ) -> dict:
        if status:
            status = parse_status(status).value
        if payment_status:
            try:
                payment_status = PaymentStatus(payment_status).value
            except ValueError:
                raise ValidationError(f"Invalid payment status '{payment_status}'") from None
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must be on or before end_date")

        page = max(page, 1)
        per_page = min(max(per_page, 1), MAX_PER_PAGE)
        orders, total = await OrderRepository.search(
            db,
            status=status,
            payment_status=payment_status,
            store_id=store_id,
            start_date=start_date,
            end_date=end_date,
            search=search.strip() if search else None,
            page=page,
            per_page=per_page,
        )
        return paginated(orders, total, page, per_page)

    @staticmethod
    async def stats(db: AsyncSession) -> dict:
        since = utcnow() - timedelta(days=RECENT_DAYS)
        completed = PaymentStatus.COMPLETED.value
        return {
            "total_orders": await OrderRepository.count(db),
            "total_revenue": await OrderRepository.revenue(db, completed),
            "recent_orders": await OrderRepository.count(db, since=since),
            "recent_revenue": await OrderRepository.revenue(db, completed, since=since),
            "status_breakdown": await OrderRepository.breakdown(db, Order.status),
            "payment_status_breakdown": await OrderRepository.breakdown(db, Order.payment_status),
            "daily_orders": [
                {"date": day, "count": count} for day, count in await OrderRepository.daily_counts(db, since)
            ],
            "top_stores": [
                {"id": store_id, "name": name, "order_count": count}
                for store_id, name, count in await OrderRepository.top_stores(db, limit=10)
            ],
        }
