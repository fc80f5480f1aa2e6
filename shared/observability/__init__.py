from .setup import setup_observability
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_orders_created_total,
    ecomm_order_transitions_total,
    ecomm_payment_events_total,
    ecomm_refunds_total,
    ecomm_notifications_total,
)
