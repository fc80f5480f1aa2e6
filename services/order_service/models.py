from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, event
from sqlalchemy.orm import relationship

from shared.config.database import Base
from shared.utils import utcnow

from .status import CUSTOMER_STATUS_LABELS, Actor, OrderStatus, PaymentStatus, allowed_targets


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    checkout_id = Column(String(32), nullable=False, index=True)  # orders placed together
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # null for guests
    email = Column(String(255), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)
    payment_method = Column(String(50), nullable=True)

    payment_intent_id = Column(String(255), nullable=True, index=True)
    payment_attempts = Column(Integer, nullable=False, default=0)

    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refund_reference = Column(String(255), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    tracking_number = Column(String(100), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    @property
    def status_label(self) -> str:
        try:
            return CUSTOMER_STATUS_LABELS[OrderStatus(self.status)]
        except ValueError:
            return self.status

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def allowed_statuses(self) -> list[str]:
        """Statuses an admin may set next through a status update."""
        return [target.value for target in allowed_targets(self.status, Actor.ADMIN)]


class OrderItem(Base):
    """Snapshot of a product at purchase time. Never updated after insert."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String(200), nullable=False)
    product_sku = Column(String(100), nullable=True)
    product_image = Column(String(500), nullable=True)
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")


@event.listens_for(OrderItem, "before_update")
def _reject_order_item_update(mapper, connection, target):
    raise ValueError(f"Order item {target.id} is an immutable purchase snapshot")
