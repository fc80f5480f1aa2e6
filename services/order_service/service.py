"""Checkout and order lifecycle.

``create_orders`` turns a cart into one pending order per store inside a
single transaction. Everything that changes an existing order's status goes
through ``update_status`` or ``cancel_order`` so the state machine, inventory
and notifications stay in step.
"""
import uuid
from collections import OrderedDict, defaultdict

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from services.cart_service.repository import CartRepository
from services.cart_service.service import CartService
from services.notification_service.queue import get_notifier
from services.notification_service.templates import order_confirmation, order_status_update
from services.product_service.repository import ProductRepository
from shared.errors import (
    AuthenticationError,
    InsufficientInventoryError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shared.observability.metrics import (
    ecomm_checkout_duration_seconds,
    ecomm_checkout_total,
    ecomm_order_transitions_total,
    ecomm_orders_created_total,
)

from .models import Order, OrderItem
from .pricing import line_total, price_lines
from .repository import OrderRepository
from .schemas import CheckoutCreate
from .status import Actor, OrderStatus, PaymentStatus, apply_transition, parse_status

logger = structlog.get_logger(__name__)


def _merge_lines(lines) -> "OrderedDict[int, int]":
    """Collapse duplicate product lines, keeping first-seen order."""
    merged: OrderedDict[int, int] = OrderedDict()
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class OrderService:

    @staticmethod
    async def create_orders(
        db: AsyncSession, data: CheckoutCreate, user_id: int | None = None
    ) -> tuple[str, list[Order]]:
        """Place a checkout. Returns the checkout id and the orders, one per store."""
        with ecomm_checkout_duration_seconds.time():
            try:
                checkout_id, orders = await OrderService._place_orders(db, data, user_id)
            except Exception:
                await db.rollback()
                ecomm_checkout_total.labels(status="failed").inc()
                raise

        ecomm_checkout_total.labels(status="success").inc()
        ecomm_orders_created_total.inc(len(orders))
        logger.info(
            "checkout_completed",
            checkout_id=checkout_id,
            user_id=user_id,
            order_numbers=[order.order_number for order in orders],
        )

        notifier = get_notifier()
        for order in orders:
            notifier.enqueue(order_confirmation(order))
        return checkout_id, orders

    @staticmethod
    async def _place_orders(db: AsyncSession, data: CheckoutCreate, user_id: int | None):
        if user_id is not None:
            user = await UserRepository.get_by_id(db, user_id)
            if user is None or not user.is_active:
                raise AuthenticationError("Could not validate credentials")
            email = data.email or user.email
        else:
            email = data.email or data.shipping_address.email

        if data.items:
            requested = _merge_lines((item.product_id, item.quantity) for item in data.items)
        elif user_id is not None:
            requested = _merge_lines(await CartService.checkout_lines(db, user_id))
        else:
            requested = OrderedDict()
        if not requested:
            raise ValidationError("Cart is empty")

        # Validate everything before touching inventory
        products = await ProductRepository.get_products_by_ids(db, requested.keys())
        missing = [pid for pid in requested if pid not in products]
        if missing:
            raise NotFoundError(f"Product {missing[0]} not found")
        inactive = [products[pid].name for pid in requested if not products[pid].is_active]
        if inactive:
            raise ValidationError(f"No longer available: {', '.join(inactive)}")
        short = [
            {
                "product_id": pid,
                "product_name": products[pid].name,
                "requested": quantity,
                "available": products[pid].inventory,
            }
            for pid, quantity in requested.items()
            if quantity > products[pid].inventory
        ]
        if short:
            raise InsufficientInventoryError(short)

        by_store: dict[int, list[tuple[int, int]]] = defaultdict(list)
        for pid, quantity in requested.items():
            by_store[products[pid].store_id].append((pid, quantity))

        shipping_address = data.shipping_address.model_dump()
        billing_address = (data.billing_address or data.shipping_address).model_dump()
        checkout_id = uuid.uuid4().hex
        taken: set[str] = set()
        orders: list[Order] = []

        for store_id in sorted(by_store):
            items = []
            for pid, quantity in by_store[store_id]:
                product = products[pid]
                # Snapshot before the UPDATE refreshes the in-session product
                unit_price, name = product.price, product.name
                if not await ProductRepository.decrement_inventory(db, pid, quantity):
                    # Someone else bought the stock between validation and now
                    raise InsufficientInventoryError(
                        [
                            {
                                "product_id": pid,
                                "product_name": name,
                                "requested": quantity,
                                "available": max(product.inventory, 0),
                            }
                        ]
                    )
                items.append(
                    OrderItem(
                        product_id=pid,
                        product_name=name,
                        product_sku=product.sku,
                        product_image=product.image_url,
                        unit_price=unit_price,
                        quantity=quantity,
                        total_price=line_total(unit_price, quantity),
                    )
                )

            totals = price_lines((item.unit_price, item.quantity) for item in items)
            order = Order(
                order_number=await OrderRepository.new_order_number(db, taken),
                checkout_id=checkout_id,
                user_id=user_id,
                email=email.lower(),
                store_id=store_id,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                subtotal=totals.subtotal,
                shipping_cost=totals.shipping_cost,
                tax_amount=totals.tax_amount,
                total_amount=totals.total_amount,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_method=data.payment_method,
                payment_attempts=0,
                items=items,
            )
            db.add(order)
            orders.append(order)

        if user_id is not None:
            await CartRepository.clear_items(db, user_id)

        await db.commit()
        return checkout_id, orders

    # --- Reads ---

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def get_order_for_user(db: AsyncSession, order_id: int, user_id: int) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None or order.user_id != user_id:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def list_user_orders(
        db: AsyncSession, user_id: int, status: str | None = None, page: int = 1, per_page: int = 20
    ) -> dict:
        if status:
            status = parse_status(status).value
        orders, total = await OrderRepository.list_for_user(db, user_id, status, page, per_page)
        return paginated(orders, total, page, per_page)

    @staticmethod
    async def get_guest_order(db: AsyncSession, order_number: str, email: str) -> Order:
        """Both credentials must match. A wrong email looks exactly like an unknown number."""
        order = await OrderRepository.get_by_order_number(db, order_number.strip().upper())
        if order is None or order.email.lower() != email.strip().lower():
            logger.info("guest_lookup_failed", order_number=order_number)
            raise NotFoundError("Order not found")
        return order

    # --- Status changes ---

    @staticmethod
    async def cancel_order(db: AsyncSession, order_id: int, user_id: int) -> Order:
        """A customer cancels their own order before it is paid for."""
        order = await OrderRepository.get_order_for_update(db, order_id)
        if order is None or order.user_id != user_id:
            raise NotFoundError("Order not found")
        if order.payment_status in (PaymentStatus.PROCESSING.value, PaymentStatus.COMPLETED.value):
            raise InvalidTransitionError("This order has already been paid for and can no longer be cancelled")
        return await OrderService._transition(db, order, OrderStatus.CANCELLED, Actor.CUSTOMER)

    @staticmethod
    async def update_status(
        db: AsyncSession,
        order_id: int,
        status_value: str,
        actor: Actor = Actor.ADMIN,
        tracking_number: str | None = None,
    ) -> Order:
        target = parse_status(status_value)
        order = await OrderRepository.get_order_for_update(db, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return await OrderService._transition(db, order, target, actor, tracking_number)

    # --- Store owners ---

    @staticmethod
    async def list_store_orders(
        db: AsyncSession,
        owner_id: int,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> dict:
        if status:
            status = parse_status(status).value
        orders, total = await OrderRepository.list_for_store_owner(db, owner_id, status, search, page, per_page)
        return paginated(orders, total, page, per_page)

    @staticmethod
    async def update_store_order_status(
        db: AsyncSession,
        order_id: int,
        owner_id: int,
        status_value: str,
        tracking_number: str | None = None,
    ) -> Order:
        """A seller moves one of their own store's orders along fulfilment.

        Orders from other stores are reported as missing.
        """
        target = parse_status(status_value)
        order = await OrderRepository.get_store_order_for_update(db, order_id, owner_id)
        if order is None:
            raise NotFoundError("Order not found")
        return await OrderService._transition(db, order, target, Actor.SELLER, tracking_number)

    @staticmethod
    async def _transition(
        db: AsyncSession,
        order: Order,
        target: OrderStatus,
        actor: Actor,
        tracking_number: str | None = None,
    ) -> Order:
        try:
            previous = apply_transition(order, target, actor)
        except InvalidTransitionError:
            await db.rollback()
            raise
        if previous is None:
            # Same status: release the row lock, nothing to write or announce
            await db.commit()
            return order

        if tracking_number and target == OrderStatus.SHIPPED:
            order.tracking_number = tracking_number
        if target == OrderStatus.CANCELLED:
            for item in order.items:
                if item.product_id is not None:
                    await ProductRepository.restore_inventory(db, item.product_id, item.quantity)

        await db.commit()
        ecomm_order_transitions_total.labels(from_status=previous, to_status=target.value).inc()
        logger.info(
            "order_status_changed",
            order_number=order.order_number,
            from_status=previous,
            to_status=target.value,
            actor=actor.value,
        )
        get_notifier().enqueue(order_status_update(order, previous))
        return order


def paginated(orders: list[Order], total: int, page: int, per_page: int) -> dict:
    return {
        "data": orders,
        "meta": {
            "current_page": page,
            "per_page": per_page,
            "total_count": total,
            "total_pages": (total + per_page - 1) // per_page if per_page else 0,
        },
    }
