"""
Order Repository

The data-access surface the rest of the desk uses. Every mutation goes
through OrderStore.transaction(), so it is committed and written to disk
before the method returns.

list() and count() never raise for a failed query: the failure is logged
and an empty list (or zero) is returned. Callers cannot tell "no matches"
from "query failed" except through the log.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy import desc, func, text

from order_desk.core.database import OrderStore
from order_desk.core.errors import PersistenceError
from order_desk.models.order import Order, OrderStatus, PaymentStatus
from order_desk.schemas.order import (
    CustomerSummary,
    DateRange,
    OrderCreate,
    OrderFilter,
    OrderStats,
)
from order_desk.services.order_filters import build_conditions, search_condition, sort_order

logger = logging.getLogger(__name__)

FilterArg = Union[OrderFilter, Dict[str, Any], None]

# Query-time failures that collapse into an empty result in list()/count().
# ValueError and LookupError come from rows whose stored date, time or
# status cannot be decoded.
QUERY_FAILURES = (PersistenceError, ValueError, LookupError)


def week_bounds(today: date) -> Tuple[date, date]:
    """Sunday to Saturday of the calendar week containing today."""
    sunday = today - timedelta(days=(today.weekday() + 1) % 7)
    return sunday, sunday + timedelta(days=6)


class OrderRepository:
    """CRUD and query operations on orders, over an initialized store."""

    def __init__(self, store: OrderStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    @staticmethod
    def _coerce_filter(filters: FilterArg) -> OrderFilter:
        if filters is None:
            return OrderFilter()
        if isinstance(filters, OrderFilter):
            return filters
        return OrderFilter.model_validate(filters)

    # ========================================================================
    # WRITES
    # ========================================================================

    def create(self, data: Union[OrderCreate, Dict[str, Any]]) -> int:
        """
        Insert a new order and return its id.

        Required fields are not re-checked here; OrderCreate validates them
        at the API boundary. Missing optional fields take their column
        defaults.
        """
        values = data.model_dump() if isinstance(data, OrderCreate) else dict(data)
        values.pop("id", None)
        now = self.clock()
        values["created_at"] = now
        values["updated_at"] = now

        with self.store.transaction() as db:
            order = Order(**values)
            db.add(order)
            db.flush()
            order_id = order.id

        logger.info(f"Created order {order_id} for {values.get('customer_name')}")
        return order_id

    def update_status(self, order_id: int, status: Union[OrderStatus, str]) -> int:
        """
        Set an order's status and refresh updated_at.

        delivered_at is stamped when the order becomes delivered and cleared
        when it goes back to pending.

        Returns:
            Number of orders changed, 0 if the id does not exist

        Raises:
            ValueError: If status is not a known OrderStatus value
        """
        status = OrderStatus(status)
        now = self.clock()
        with self.store.transaction() as db:
            updated = db.query(Order).filter(Order.id == order_id).update(
                {
                    Order.status: status,
                    Order.updated_at: now,
                    Order.delivered_at: now if status == OrderStatus.DELIVERED else None,
                },
                synchronize_session=False,
            )

        logger.info(f"Order {order_id} status -> {status.value} ({updated} updated)")
        return updated

    def update_payment_status(self, order_id: int, payment_status: Union[PaymentStatus, str]) -> int:
        """
        Record whether an order has been paid for. Independent of delivery.

        Returns:
            Number of orders changed, 0 if the id does not exist

        Raises:
            ValueError: If payment_status is not a known PaymentStatus value
        """
        payment_status = PaymentStatus(payment_status)
        with self.store.transaction() as db:
            updated = db.query(Order).filter(Order.id == order_id).update(
                {Order.payment_status: payment_status, Order.updated_at: self.clock()},
                synchronize_session=False,
            )

        logger.info(f"Order {order_id} payment -> {payment_status.value} ({updated} updated)")
        return updated

    def delete(self, order_id: int) -> int:
        """Delete one order. Returns 1 if it existed, else 0."""
        with self.store.transaction() as db:
            deleted = db.query(Order).filter(Order.id == order_id).delete(
                synchronize_session=False
            )

        logger.info(f"Deleted order {order_id} ({deleted} removed)")
        return deleted

    def clear_all(self) -> int:
        """
        Delete every order and reset id assignment so the next order gets id 1.

        Irreversible. Returns the number of orders removed.
        """
        with self.store.transaction() as db:
            deleted = db.query(Order).delete(synchronize_session=False)
            db.execute(
                text("DELETE FROM sqlite_sequence WHERE name = :name"),
                {"name": Order.__tablename__},
            )

        logger.warning(f"Cleared all orders ({deleted} removed)")
        return deleted

    # ========================================================================
    # READS
    # ========================================================================

    def get_by_id(self, order_id: int) -> Optional[Order]:
        """Return the order, or None when there is no such id."""
        with self.store.read() as db:
            return db.get(Order, order_id)

    def list(self, filters: FilterArg = None) -> List[Order]:
        """
        Orders matching every option set on the filter.

        Ordered by order_date then order_time, newest first, unless the
        filter's sort says otherwise.
        """
        filters = self._coerce_filter(filters)
        try:
            with self.store.read() as db:
                query = db.query(Order).filter(*build_conditions(filters))
                query = query.order_by(*sort_order(filters))
                if filters.limit is not None:
                    query = query.limit(filters.limit)
                if filters.offset is not None:
                    query = query.offset(filters.offset)
                return query.all()
        except QUERY_FAILURES:
            logger.exception("Order list query failed; returning no orders")
            return []

    def count(self, filters: FilterArg = None) -> int:
        """Number of orders matching the filter. limit/offset are ignored."""
        filters = self._coerce_filter(filters)
        try:
            with self.store.read() as db:
                return (
                    db.query(func.count(Order.id))
                    .filter(*build_conditions(filters))
                    .scalar()
                ) or 0
        except QUERY_FAILURES:
            logger.exception("Order count query failed; returning 0")
            return 0

    def get_todays(self) -> List[Order]:
        return self.list(OrderFilter(order_date=self.clock().date()))

    def get_this_weeks(self) -> List[Order]:
        start, end = week_bounds(self.clock().date())
        return self.list(OrderFilter(date_range=DateRange(start=start, end=end)))

    def stats(self) -> OrderStats:
        """Sidebar counters: all orders, today's, this week's, and per status."""
        today = self.clock().date()
        start, end = week_bounds(today)
        return OrderStats(
            total=self.count(),
            today=self.count(OrderFilter(order_date=today)),
            week=self.count(OrderFilter(date_range=DateRange(start=start, end=end))),
            pending=self.count(OrderFilter(status=OrderStatus.PENDING)),
            delivered=self.count(OrderFilter(status=OrderStatus.DELIVERED)),
        )

    def search_customers(self, term: str = "", limit: int = 10) -> List[CustomerSummary]:
        """
        Distinct customers whose name or phone number contains term,
        most recently active first. Used to prefill the order form.
        """
        last_order_at = func.max(Order.updated_at).label("last_order_at")
        with self.store.read() as db:
            query = db.query(
                Order.customer_name,
                Order.phone_number,
                func.count(Order.id).label("order_count"),
                last_order_at,
            )
            condition = search_condition(term)
            if condition is not None:
                query = query.filter(condition)
            rows = (
                query.group_by(Order.customer_name, Order.phone_number)
                .order_by(desc("last_order_at"))
                .limit(limit)
                .all()
            )

        return [
            CustomerSummary(
                customer_name=row.customer_name,
                phone_number=row.phone_number,
                order_count=row.order_count,
                last_order_at=row.last_order_at,
            )
            for row in rows
        ]
