from datetime import date
from typing import Optional

from fastapi import HTTPException, Query, Request, status as status_codes

from order_desk.models.order import OrderStatus, PaymentStatus
from order_desk.schemas.order import DateRange, OrderFilter, OrderSort
from order_desk.services.order_repository import OrderRepository


def get_repository(request: Request) -> OrderRepository:
    """The repository created for this app in its lifespan."""
    return request.app.state.repository


def get_order_filter(
    request: Request,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    order_date: Optional[date] = Query(None, alias="date"),
    start: Optional[date] = Query(None, description="Inclusive lower bound on order date"),
    end: Optional[date] = Query(None, description="Inclusive upper bound on order date"),
    search: Optional[str] = Query(None, description="Matches customer name or phone number"),
    sort: OrderSort = OrderSort.DATE_DESC,
    limit: Optional[int] = Query(None, ge=1, description="Capped by the max_page_size setting"),
    offset: Optional[int] = Query(None, ge=0),
) -> OrderFilter:
    """Build an OrderFilter from query parameters."""
    if start is not None and end is not None and start > end:
        raise HTTPException(
            status_code=status_codes.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start must not be after end",
        )

    max_page_size = request.app.state.settings.max_page_size
    if limit is not None and limit > max_page_size:
        raise HTTPException(
            status_code=status_codes.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must not exceed {max_page_size}",
        )

    date_range = None
    if start is not None or end is not None:
        date_range = DateRange(start=start, end=end)

    return OrderFilter(
        status=status,
        payment_status=payment_status,
        order_date=order_date,
        date_range=date_range,
        search=search,
        sort=sort,
        limit=limit,
        offset=offset,
    )
