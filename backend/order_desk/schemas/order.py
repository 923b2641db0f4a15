from pydantic import AliasChoices, BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date, time, datetime
import enum

from order_desk.models.order import OrderStatus, PaymentStatus


class OrderSort(str, enum.Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


class OrderBase(BaseModel):
    customer_name: str
    phone_number: str
    order_date: date
    order_time: time
    weight: Optional[str] = ""
    address: Optional[str] = ""
    image_path: Optional[str] = None
    order_notes: Optional[str] = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING


class OrderCreate(OrderBase):
    customer_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class OrderResponse(OrderBase):
    id: int
    status: OrderStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DateRange(BaseModel):
    """Inclusive bounds on order_date. Either side may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start and self.end and self.start > self.end:
            raise ValueError("date range start must not be after its end")
        return self


class OrderFilter(BaseModel):
    """
    Recognized list/count options. Every option that is set narrows the
    result; unset options are ignored.
    """
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    order_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("date", "order_date")
    )
    date_range: Optional[DateRange] = Field(
        None, validation_alias=AliasChoices("date_range", "dateRange")
    )
    search: Optional[str] = None
    sort: OrderSort = OrderSort.DATE_DESC
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)


class OrderStats(BaseModel):
    total: int = 0
    today: int = 0
    week: int = 0
    pending: int = 0
    delivered: int = 0


class CustomerSummary(BaseModel):
    customer_name: str
    phone_number: str
    order_count: int
    last_order_at: Optional[datetime] = None


# Response envelopes in the shape the desktop shell expects

class OrderListResponse(BaseModel):
    success: bool = True
    orders: List[OrderResponse]
    total: Optional[int] = None


class OrderDetailResponse(BaseModel):
    success: bool = True
    order: OrderResponse


class OrderCreatedResponse(BaseModel):
    success: bool = True
    order_id: int


class CountResponse(BaseModel):
    success: bool = True
    count: int


class StatsResponse(BaseModel):
    success: bool = True
    stats: OrderStats


class CustomerListResponse(BaseModel):
    success: bool = True
    customers: List[CustomerSummary]


class MutationResponse(BaseModel):
    success: bool = True
    updated: Optional[int] = None
    deleted: Optional[int] = None
