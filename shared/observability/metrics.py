from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total checkouts processed",
    ["status"]  # Labels: 'success', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds",
    "Checkout duration in seconds"
)

ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Orders created (one per store in a checkout)"
)

ecomm_order_transitions_total = Counter(
    "ecomm_order_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"]
)

ecomm_payment_events_total = Counter(
    "ecomm_payment_events_total",
    "Payment reconciliation outcomes",
    ["source", "outcome"]  # source: 'webhook' | 'confirm'; outcome: 'completed', 'failed', ...
)

ecomm_refunds_total = Counter(
    "ecomm_refunds_total",
    "Refund attempts",
    ["status"]  # Labels: 'success', 'failed', 'rejected'
)

ecomm_notifications_total = Counter(
    "ecomm_notifications_total",
    "Notification deliveries",
    ["kind", "outcome"]  # outcome: 'sent', 'failed'
)
