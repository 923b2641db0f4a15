from sqlalchemy import Column, Integer, String, Index, Enum as SQLEnum
from sqlalchemy.sql import func
import enum

from order_desk.core.database import Base
from order_desk.models.types import IsoDate, IsoTime, IsoDateTime


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    DELIVERED = "delivered"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    DONE = "done"


class Order(Base):
    """
    A customer order taken at the desk.

    Ids come from SQLite's AUTOINCREMENT sequence, so they are never reused
    after a delete. Server defaults double as the backfill values used when
    an older table layout is rebuilt into this one.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    customer_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    order_date = Column(IsoDate, nullable=False)
    order_time = Column(IsoTime, nullable=False)
    weight = Column(String, server_default="")
    address = Column(String, server_default="")
    image_path = Column(String, nullable=True)  # absolute path, file lives outside the database
    order_notes = Column(String, server_default="")

    status = Column(
        SQLEnum(
            OrderStatus,
            values_callable=lambda obj: [e.value for e in obj],
            native_enum=False,
            validate_strings=True,
        ),
        server_default=OrderStatus.PENDING.value,
    )
    payment_status = Column(
        SQLEnum(
            PaymentStatus,
            values_callable=lambda obj: [e.value for e in obj],
            native_enum=False,
            validate_strings=True,
        ),
        server_default=PaymentStatus.PENDING.value,
    )

    created_at = Column(IsoDateTime, server_default=func.now())
    updated_at = Column(IsoDateTime, server_default=func.now())
    delivered_at = Column(IsoDateTime, nullable=True)  # set while status is delivered

    __table_args__ = (
        Index("ix_orders_order_date", "order_date"),
        Index("ix_orders_customer_name", "customer_name"),
        Index("ix_orders_phone_number", "phone_number"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_payment_status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Order(id={self.id}, customer={self.customer_name}, date={self.order_date}, status={self.status})>"
