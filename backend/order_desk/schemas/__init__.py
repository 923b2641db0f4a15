from order_desk.schemas.order import (
    OrderCreate, OrderStatusUpdate, PaymentStatusUpdate, OrderResponse, OrderFilter, OrderSort, DateRange,
    OrderStats, CustomerSummary,
)

__all__ = [
    "OrderCreate", "OrderStatusUpdate", "PaymentStatusUpdate", "OrderResponse",
    "OrderFilter", "OrderSort", "DateRange",
    "OrderStats", "CustomerSummary",
]
