"""
Translates an OrderFilter into SQLAlchemy expressions.

Every value reaches the database as a bound parameter, including the
search term, whose LIKE wildcards are escaped first.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from order_desk.models.order import Order
from order_desk.schemas.order import OrderFilter, OrderSort

LIKE_ESCAPE = "\\"

SORT_ORDERS = {
    OrderSort.DATE_DESC: (Order.order_date.desc(), Order.order_time.desc(), Order.id.desc()),
    OrderSort.DATE_ASC: (Order.order_date.asc(), Order.order_time.asc(), Order.id.asc()),
    OrderSort.NAME_ASC: (Order.customer_name.asc(), Order.id.asc()),
    OrderSort.NAME_DESC: (Order.customer_name.desc(), Order.id.desc()),
}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def search_condition(term: str) -> Optional[ColumnElement]:
    """Case-insensitive substring match on customer name or phone number."""
    term = (term or "").strip()
    if not term:
        return None
    pattern = f"%{escape_like(term)}%"
    return or_(
        Order.customer_name.ilike(pattern, escape=LIKE_ESCAPE),
        Order.phone_number.ilike(pattern, escape=LIKE_ESCAPE),
    )


def build_conditions(filters: OrderFilter) -> List[ColumnElement]:
    conditions = []

    if filters.status is not None:
        conditions.append(Order.status == filters.status)

    if filters.payment_status is not None:
        conditions.append(Order.payment_status == filters.payment_status)

    if filters.order_date is not None:
        conditions.append(Order.order_date == filters.order_date)

    if filters.date_range is not None:
        if filters.date_range.start is not None:
            conditions.append(Order.order_date >= filters.date_range.start)
        if filters.date_range.end is not None:
            conditions.append(Order.order_date <= filters.date_range.end)

    if filters.search:
        condition = search_condition(filters.search)
        if condition is not None:
            conditions.append(condition)

    return conditions


def sort_order(filters: OrderFilter):
    return SORT_ORDERS[filters.sort]
