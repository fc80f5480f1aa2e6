"""Customer, seller and guest order endpoints.

Checkout works with or without a bearer token. Other customer routes under
``/orders`` are scoped to the signed-in user's own orders, while ``/orders/store``
and the status PATCH serve store owners and only see orders of stores they
own. Guests track an order with its number plus the email it was placed with.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import get_db
from shared.security.dependencies import get_current_user, get_optional_user
from shared.security.rate_limiter import limiter

from .schemas import CheckoutCreate, CheckoutResponse, OrderPage, OrderResponse, StatusUpdate
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])
guest_router = APIRouter(prefix="/guest/orders", tags=["Guest orders"])


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def create_orders(
    request: Request,
    checkout: CheckoutCreate,
    user_id: str | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    checkout_id, orders = await OrderService.create_orders(
        db, checkout, int(user_id) if user_id is not None else None
    )
    return {"checkout_id": checkout_id, "orders": orders}


@router.get("", response_model=OrderPage)
async def list_orders(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_user_orders(db, int(user_id), status, page, per_page)


@router.get("/store", response_model=OrderPage)
async def list_store_orders(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_store_orders(db, int(user_id), status, search, page, per_page)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order_for_user(db, order_id, int(user_id))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: int, user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await OrderService.cancel_order(db, order_id, int(user_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_store_order_status(
    order_id: int,
    update: StatusUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_store_order_status(
        db, order_id, int(user_id), update.status, tracking_number=update.tracking_number
    )


@guest_router.get("/{order_number}", response_model=OrderResponse)
@limiter.limit(settings.GUEST_LOOKUP_RATE_LIMIT)
async def get_guest_order(
    request: Request,
    order_number: str,
    email: str = Query(..., min_length=3),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_guest_order(db, order_number, email)
