"""Tests for OrderRepository CRUD, filtering and statistics."""

from datetime import date, datetime, time

import pytest

from factories import FakeClock, order_data
from order_desk.core.errors import StatementError
from order_desk.models.order import OrderStatus, PaymentStatus
from order_desk.schemas.order import DateRange, OrderCreate, OrderFilter, OrderSort
from order_desk.services.order_filters import escape_like
from order_desk.services.order_repository import OrderRepository, week_bounds


@pytest.fixture
def populated(repository):
    """Five orders over one week, two of them delivered."""
    ids = {
        "asha": repository.create(order_data(customer_name="Asha Iyer", phone_number="9998887777",
                                             order_date="2024-05-01", order_time="10:00")),
        "john": repository.create(order_data(customer_name="John Thomas", phone_number="9876543210",
                                             order_date="2024-05-02", order_time="09:00")),
        "johnny": repository.create(order_data(customer_name="Johnny Das", phone_number="9000011111",
                                               order_date="2024-05-02", order_time="11:00")),
        "meera": repository.create(order_data(customer_name="Meera Nair", phone_number="9123456780",
                                              order_date="2024-04-27", order_time="16:30")),
        "ravi": repository.create(order_data(customer_name="Ravi Menon", phone_number="9555512345",
                                             order_date="2024-05-05", order_time="08:15")),
    }
    repository.update_status(ids["john"], OrderStatus.DELIVERED)
    repository.update_status(ids["meera"], OrderStatus.DELIVERED)
    return ids


class TestCreateAndRead:
    def test_create_get_and_update_status(self, repository) -> None:
        order_id = repository.create(OrderCreate(**order_data()))
        assert order_id == 1

        order = repository.get_by_id(1)
        assert order.customer_name == "Asha"
        assert order.phone_number == "9998887777"
        assert order.order_date == date(2024, 5, 1)
        assert order.order_time == time(10, 0)
        assert order.status == OrderStatus.PENDING
        assert order.weight == ""
        assert order.address == ""
        assert order.image_path is None

        assert repository.update_status(1, "delivered") == 1

        order = repository.get_by_id(1)
        assert order.status == OrderStatus.DELIVERED
        assert order.updated_at > order.created_at

    def test_create_accepts_plain_dict_with_optional_fields(self, repository) -> None:
        order_id = repository.create(order_data(
            weight="2 kg",
            address="12, MG Road",
            image_path="/home/desk/images/2024/05/01/order_1.jpg",
            order_notes="Call before delivery",
        ))

        order = repository.get_by_id(order_id)
        assert order.weight == "2 kg"
        assert order.address == "12, MG Road"
        assert order.image_path.endswith("order_1.jpg")
        assert order.order_notes == "Call before delivery"

    def test_timestamps_come_from_clock(self, store) -> None:
        clock = FakeClock(datetime(2024, 5, 1, 12, 0, 0))
        repository = OrderRepository(store, clock=clock)

        order_id = repository.create(order_data())
        order = repository.get_by_id(order_id)

        assert order.created_at == datetime(2024, 5, 1, 12, 0, 0)
        assert order.updated_at == order.created_at

    def test_get_missing_order_returns_none(self, repository) -> None:
        assert repository.get_by_id(42) is None

    def test_invalid_status_in_create_raises_statement_error(self, repository) -> None:
        with pytest.raises(StatementError):
            repository.create(order_data(status="shipped"))
        assert repository.count() == 0


class TestUpdatesAndDeletes:
    def test_delivered_at_follows_status(self, repository) -> None:
        order_id = repository.create(order_data())
        assert repository.get_by_id(order_id).delivered_at is None

        repository.update_status(order_id, OrderStatus.DELIVERED)
        order = repository.get_by_id(order_id)
        assert order.delivered_at == order.updated_at

        repository.update_status(order_id, OrderStatus.PENDING)
        assert repository.get_by_id(order_id).delivered_at is None

    def test_payment_status_is_independent_of_delivery(self, repository) -> None:
        order_id = repository.create(order_data())
        assert repository.get_by_id(order_id).payment_status == PaymentStatus.PENDING

        assert repository.update_payment_status(order_id, "done") == 1

        order = repository.get_by_id(order_id)
        assert order.payment_status == PaymentStatus.DONE
        assert order.status == OrderStatus.PENDING
        assert order.updated_at > order.created_at

    def test_payment_status_update_rejects_unknown_value(self, repository) -> None:
        order_id = repository.create(order_data())
        with pytest.raises(ValueError):
            repository.update_payment_status(order_id, "refunded")
        assert repository.update_payment_status(99, PaymentStatus.DONE) == 0

    def test_update_missing_order_affects_nothing(self, repository) -> None:
        assert repository.update_status(99, OrderStatus.DELIVERED) == 0

    def test_update_rejects_unknown_status(self, repository) -> None:
        order_id = repository.create(order_data())
        with pytest.raises(ValueError):
            repository.update_status(order_id, "lost")
        assert repository.get_by_id(order_id).status == OrderStatus.PENDING

    def test_delete(self, repository) -> None:
        order_id = repository.create(order_data())
        assert repository.delete(order_id) == 1
        assert repository.get_by_id(order_id) is None
        assert repository.delete(order_id) == 0

    def test_ids_increase_and_are_never_reused(self, repository) -> None:
        ids = [repository.create(order_data()) for _ in range(3)]
        repository.delete(ids[-1])
        repository.delete(ids[0])
        ids.append(repository.create(order_data()))
        ids.append(repository.create(order_data()))

        assert ids == [1, 2, 3, 4, 5]

    def test_clear_all_resets_ids(self, repository) -> None:
        for _ in range(3):
            repository.create(order_data())

        assert repository.clear_all() == 3
        assert repository.count() == 0
        assert repository.create(order_data()) == 1


class TestListAndCount:
    def test_default_order_is_date_then_time_descending(self, repository, populated) -> None:
        orders = repository.list({})
        assert [o.id for o in orders] == [
            populated["ravi"],
            populated["johnny"],
            populated["john"],
            populated["asha"],
            populated["meera"],
        ]

    def test_sort_override(self, repository, populated) -> None:
        names = [o.customer_name for o in repository.list(OrderFilter(sort=OrderSort.NAME_ASC))]
        assert names == sorted(names)

        oldest_first = repository.list({"sort": "date-asc"})
        assert oldest_first[0].id == populated["meera"]

    def test_status_and_search_are_combined(self, repository, populated) -> None:
        orders = repository.list({"status": "pending", "search": "john"})
        assert [o.id for o in orders] == [populated["johnny"]]

    def test_search_is_case_insensitive_on_name_or_phone(self, repository, populated) -> None:
        assert {o.id for o in repository.list({"search": "JOHN"})} == {
            populated["john"],
            populated["johnny"],
        }
        assert [o.id for o in repository.list({"search": "55512"})] == [populated["ravi"]]

    def test_search_wildcards_match_literally(self, repository, populated) -> None:
        assert repository.list({"search": "%"}) == []
        assert repository.list({"search": "_"}) == []
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"

    def test_payment_status_filter(self, repository, populated) -> None:
        repository.update_payment_status(populated["meera"], PaymentStatus.DONE)

        assert [o.id for o in repository.list({"payment_status": "done"})] == [populated["meera"]]
        assert repository.count({"payment_status": "pending", "status": "delivered"}) == 1

    def test_exact_date(self, repository, populated) -> None:
        orders = repository.list({"date": "2024-05-02"})
        assert [o.id for o in orders] == [populated["johnny"], populated["john"]]

    def test_date_range_is_inclusive(self, repository, populated) -> None:
        orders = repository.list(
            OrderFilter(date_range=DateRange(start=date(2024, 5, 1), end=date(2024, 5, 2)))
        )
        assert {o.id for o in orders} == {populated["asha"], populated["john"], populated["johnny"]}

        open_ended = repository.list({"dateRange": {"start": "2024-05-02"}})
        assert {o.id for o in open_ended} == {populated["john"], populated["johnny"], populated["ravi"]}

    def test_limit_and_offset(self, repository, populated) -> None:
        page = repository.list({"limit": 2, "offset": 1})
        assert [o.id for o in page] == [populated["johnny"], populated["john"]]

        tail = repository.list({"offset": 4})
        assert [o.id for o in tail] == [populated["meera"]]

    def test_count_uses_same_filters_and_ignores_paging(self, repository, populated) -> None:
        assert repository.count() == 5
        assert repository.count({"status": "delivered"}) == 2
        assert repository.count({"search": "john", "limit": 1}) == 2
        assert repository.count({"date": "2030-01-01"}) == 0

    def test_no_match_is_empty_list(self, repository, populated) -> None:
        assert repository.list({"search": "nobody"}) == []

    def test_query_failure_collapses_to_empty_result(self, repository, populated, monkeypatch, caplog) -> None:
        def broken_read():
            raise StatementError("database is locked")

        monkeypatch.setattr(repository.store, "read", broken_read)

        assert repository.list() == []
        assert repository.count() == 0
        assert "Order list query failed" in caplog.text
        assert "Order count query failed" in caplog.text


class TestCalendarViews:
    def test_week_bounds_run_sunday_to_saturday(self) -> None:
        # 2024-05-01 is a Wednesday
        assert week_bounds(date(2024, 5, 1)) == (date(2024, 4, 28), date(2024, 5, 4))
        assert week_bounds(date(2024, 4, 28)) == (date(2024, 4, 28), date(2024, 5, 4))
        assert week_bounds(date(2024, 5, 4)) == (date(2024, 4, 28), date(2024, 5, 4))

    def test_todays_orders(self, repository, populated) -> None:
        # The clock is on 2024-05-01
        assert [o.id for o in repository.get_todays()] == [populated["asha"]]

    def test_this_weeks_orders(self, repository, populated) -> None:
        ids = [o.id for o in repository.get_this_weeks()]
        assert ids == [populated["johnny"], populated["john"], populated["asha"]]

    def test_stats(self, repository, populated) -> None:
        stats = repository.stats()
        assert stats.total == 5
        assert stats.today == 1
        assert stats.week == 3
        assert stats.pending == 3
        assert stats.delivered == 2


class TestCustomerSearch:
    def test_distinct_customers_most_recent_first(self, repository, populated) -> None:
        repository.create(order_data(customer_name="Asha Iyer", phone_number="9998887777"))

        customers = repository.search_customers("")
        assert customers[0].customer_name == "Asha Iyer"
        assert customers[0].order_count == 2
        assert len(customers) == 5

    def test_search_and_limit(self, repository, populated) -> None:
        customers = repository.search_customers("john", limit=1)
        assert len(customers) == 1
        assert customers[0].customer_name in {"John Thomas", "Johnny Das"}
