"""Customer emails for order lifecycle events."""
from dataclasses import dataclass

from services.order_service.status import CUSTOMER_STATUS_LABELS, OrderStatus

STATUS_MESSAGES = {
    OrderStatus.PENDING: "We've received your order and it's being prepared.",
    OrderStatus.CONFIRMED: "Your payment was received and your order is confirmed.",
    OrderStatus.PROCESSING: "Your order is currently being prepared for shipment.",
    OrderStatus.SHIPPED: "Great news! Your order has been shipped and is on its way to you.",
    OrderStatus.DELIVERED: "Your order has been delivered. We hope you love it!",
    OrderStatus.CANCELLED: "Your order has been cancelled. If you have any questions, please contact us.",
    OrderStatus.REFUNDED: "Your order has been refunded. Please allow 5-10 business days for the refund to appear.",
}


@dataclass(frozen=True)
class Notification:
    kind: str
    to: str
    subject: str
    body: str
    order_number: str


def _money(value) -> str:
    return f"${float(value):,.2f}"


def order_confirmation(order) -> Notification:
    lines = "\n".join(
        f"  {item.quantity} x {item.product_name} @ {_money(item.unit_price)} = {_money(item.total_price)}"
        for item in order.items
    )
    body = (
        f"Thank you for your order {order.order_number}.\n\n"
        f"{lines}\n\n"
        f"Subtotal: {_money(order.subtotal)}\n"
        f"Shipping: {_money(order.shipping_cost)}\n"
        f"Tax: {_money(order.tax_amount)}\n"
        f"Total: {_money(order.total_amount)}\n\n"
        "We'll email you again once your payment is confirmed."
    )
    return Notification(
        kind="order_confirmation",
        to=order.email,
        subject=f"Order Confirmation - {order.order_number}",
        body=body,
        order_number=order.order_number,
    )


def order_status_update(order, previous_status: str | None) -> Notification:
    status = OrderStatus(order.status)
    body = f"{STATUS_MESSAGES[status]}\n\nOrder {order.order_number} is now: {CUSTOMER_STATUS_LABELS[status]}."
    if previous_status:
        previous = OrderStatus(previous_status)
        body += f"\nPrevious status: {CUSTOMER_STATUS_LABELS[previous]}."
    if status == OrderStatus.SHIPPED and order.tracking_number:
        body += f"\nTracking number: {order.tracking_number}"
    return Notification(
        kind="order_status_update",
        to=order.email,
        subject=f"Order Update - {order.order_number}",
        body=body,
        order_number=order.order_number,
    )


def refund_notification(order) -> Notification:
    reason = order.refund_reason or "as requested"
    body = (
        f"A refund of {_money(order.refund_amount)} has been processed "
        f"for order {order.order_number}.\n\n"
        f"Reason: {reason}\n\n"
        "The refund should appear in your account within 5-10 "
        "business days, depending on your payment provider."
    )
    return Notification(
        kind="refund_notification",
        to=order.email,
        subject=f"Refund Processed - {order.order_number}",
        body=body,
        order_number=order.order_number,
    )
