from order_desk.models.order import Order, OrderStatus, PaymentStatus

__all__ = [
    "Order",
    "OrderStatus",
    "PaymentStatus",
]
