from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.dependencies import get_current_admin
from services.payment_service.refunds import RefundService
from shared.config.database import get_db

from .admin_service import AdminOrderService
from .schemas import AdminOrderPage, AdminOrderResponse, OrderStats, RefundRequest, StatusUpdate
from .service import OrderService
from .status import Actor

# Every route here requires a signed-in admin
router = APIRouter(prefix="/admin/orders", tags=["Admin orders"], dependencies=[Depends(get_current_admin)])


@router.get("", response_model=AdminOrderPage)
async def list_orders(
    status: str | None = Query(default=None),
    payment_status: str | None = Query(default=None),
    store_id: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1),
    db: AsyncSession = Depends(get_db),
):
    return await AdminOrderService.list_orders(
        db,
        status=status,
        payment_status=payment_status,
        store_id=store_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        per_page=per_page,
    )


@router.get("/stats", response_model=OrderStats)
async def order_stats(db: AsyncSession = Depends(get_db)):
    return await AdminOrderService.stats(db)


@router.get("/{order_id}", response_model=AdminOrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id)


@router.patch("/{order_id}/status", response_model=AdminOrderResponse)
async def update_status(order_id: int, update: StatusUpdate, db: AsyncSession = Depends(get_db)):
    return await OrderService.update_status(
        db, order_id, update.status, actor=Actor.ADMIN, tracking_number=update.tracking_number
    )


@router.post("/{order_id}/refund", response_model=AdminOrderResponse)
async def refund_order(order_id: int, refund: RefundRequest, db: AsyncSession = Depends(get_db)):
    return await RefundService.refund_order(db, order_id, amount=refund.amount, reason=refund.reason)
