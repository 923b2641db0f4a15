"""
Sample Data Seeder

Fills the configured order database with realistic demo orders:
- Customers who come back more than once
- Orders spread over the last few weeks, at shop hours
- Older orders mostly delivered and paid, recent ones mostly pending

Run with: python -m order_desk.scripts.seed_data [--count N] [--clear]
"""

import argparse
import random
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from order_desk.config import get_settings
from order_desk.core.database import OrderStore
from order_desk.models.order import OrderStatus, PaymentStatus
from order_desk.schemas.order import OrderCreate
from order_desk.services.order_repository import OrderRepository


FIRST_NAMES = [
    "Asha", "Ravi", "Meera", "Arjun", "Priya", "Kiran", "Divya", "Rahul",
    "Anita", "Suresh", "Lakshmi", "Vikram", "Neha", "Imran", "Fatima", "John",
    "Maria", "David", "Sarah", "Joseph",
]

LAST_NAMES = [
    "Sharma", "Patel", "Iyer", "Khan", "Reddy", "Nair", "Das", "Menon",
    "Fernandes", "Gupta", "Thomas", "Joshi",
]

STREETS = [
    "MG Road", "Station Road", "Temple Street", "Market Lane", "Lake View",
    "Church Street", "Park Avenue", "Gandhi Nagar",
]

NOTES = [
    "", "", "", "Call before delivery", "Leave at the gate", "Fragile",
    "Deliver after 5 PM", "Cash on delivery",
]


def make_customers(count: int) -> List[dict]:
    customers = []
    for _ in range(count):
        customers.append({
            "customer_name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
            "phone_number": f"9{random.randint(100000000, 999999999)}",
            "address": f"{random.randint(1, 250)}, {random.choice(STREETS)}",
        })
    return customers


def make_order(customer: dict, today: date, days_back: int) -> OrderCreate:
    order_date = today - timedelta(days=random.randint(0, days_back))
    order_time = time(random.randint(9, 20), random.choice([0, 15, 30, 45]))
    return OrderCreate(
        customer_name=customer["customer_name"],
        phone_number=customer["phone_number"],
        order_date=order_date,
        order_time=order_time,
        weight=f"{random.choice([0.5, 1, 1.5, 2, 3, 5])} kg",
        address=customer["address"],
        order_notes=random.choice(NOTES),
    )


def seed_orders(repository: OrderRepository, count: int, days_back: int = 28) -> int:
    """Create count demo orders and return how many were created."""
    today = datetime.now().date()
    customers = make_customers(max(1, count // 3))

    created = 0
    for _ in range(count):
        order = make_order(random.choice(customers), today, days_back)
        order_id = repository.create(order)
        age = (today - order.order_date).days
        if age > 2 and random.random() < 0.8:
            repository.update_status(order_id, OrderStatus.DELIVERED)
            if random.random() < 0.9:
                repository.update_payment_status(order_id, PaymentStatus.DONE)
        created += 1

    print(f"Created {created} orders for {len(customers)} customers")
    return created


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the order database with demo orders")
    parser.add_argument("--count", type=int, default=60, help="Number of orders to create")
    parser.add_argument("--clear", action="store_true", help="Remove existing orders first")
    args = parser.parse_args(argv)

    settings = get_settings()

    print("\n" + "="*50)
    print("SEEDING ORDER DESK DATABASE")
    print(f"  {settings.database_path}")
    print("="*50 + "\n")

    with OrderStore(settings.database_path, fsync=settings.fsync_on_persist) as store:
        repository = OrderRepository(store)
        if args.clear:
            removed = repository.clear_all()
            print(f"Removed {removed} existing orders")
        seed_orders(repository, args.count)
        stats = repository.stats()

    print("\n" + "="*50)
    print("SEEDING COMPLETE")
    print("="*50)
    print(f"\n  Total: {stats.total}  Today: {stats.today}  This week: {stats.week}")
    print(f"  Pending: {stats.pending}  Delivered: {stats.delivered}\n")


if __name__ == "__main__":
    main()
