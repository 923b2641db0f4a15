from fastapi import APIRouter, Depends, HTTPException, Query

from order_desk.api.deps import get_order_filter, get_repository
from order_desk.schemas.order import (
    CountResponse,
    CustomerListResponse,
    MutationResponse,
    OrderCreate,
    OrderCreatedResponse,
    OrderDetailResponse,
    OrderFilter,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    StatsResponse,
)
from order_desk.services.order_repository import OrderRepository

router = APIRouter()


# ============================================================================
# QUERIES
# ============================================================================

@router.get("/", response_model=OrderListResponse)
async def list_orders(
    filters: OrderFilter = Depends(get_order_filter),
    repo: OrderRepository = Depends(get_repository),
):
    """
    List orders matching the query parameters, newest first by default.

    `total` counts every match regardless of limit/offset, for pagination.
    """
    orders = repo.list(filters)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        total=repo.count(filters),
    )


@router.get("/count", response_model=CountResponse)
async def count_orders(
    filters: OrderFilter = Depends(get_order_filter),
    repo: OrderRepository = Depends(get_repository),
):
    """Count orders matching the query parameters."""
    return CountResponse(count=repo.count(filters))


@router.get("/today", response_model=OrderListResponse)
async def todays_orders(repo: OrderRepository = Depends(get_repository)):
    """Orders dated today (local calendar)."""
    orders = repo.get_todays()
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.get("/week", response_model=OrderListResponse)
async def this_weeks_orders(repo: OrderRepository = Depends(get_repository)):
    """Orders dated in the current Sunday-to-Saturday week."""
    orders = repo.get_this_weeks()
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.get("/stats", response_model=StatsResponse)
async def order_stats(repo: OrderRepository = Depends(get_repository)):
    return StatsResponse(stats=repo.stats())


@router.get("/customers", response_model=CustomerListResponse)
async def search_customers(
    q: str = Query("", description="Part of a customer name or phone number"),
    limit: int = Query(10, ge=1, le=50),
    repo: OrderRepository = Depends(get_repository),
):
    """Previous customers for prefilling the order form."""
    return CustomerListResponse(customers=repo.search_customers(q, limit=limit))


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: int, repo: OrderRepository = Depends(get_repository)):
    """Get a specific order by ID."""
    order = repo.get_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderDetailResponse(order=OrderResponse.model_validate(order))


# ============================================================================
# MUTATIONS
# ============================================================================

@router.post("/", response_model=OrderCreatedResponse, status_code=201)
async def create_order(order_data: OrderCreate, repo: OrderRepository = Depends(get_repository)):
    """Create a new order. The order is on disk when this returns."""
    return OrderCreatedResponse(order_id=repo.create(order_data))


@router.patch("/{order_id}/status", response_model=MutationResponse)
async def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    repo: OrderRepository = Depends(get_repository),
):
    """Mark an order pending or delivered."""
    updated = repo.update_status(order_id, status_data.status)
    if not updated:
        raise HTTPException(status_code=404, detail="Order not found")
    return MutationResponse(updated=updated)


@router.patch("/{order_id}/payment-status", response_model=MutationResponse)
async def update_payment_status(
    order_id: int,
    payment_data: PaymentStatusUpdate,
    repo: OrderRepository = Depends(get_repository),
):
    """Mark an order's payment pending or done."""
    updated = repo.update_payment_status(order_id, payment_data.payment_status)
    if not updated:
        raise HTTPException(status_code=404, detail="Order not found")
    return MutationResponse(updated=updated)


@router.delete("/{order_id}", response_model=MutationResponse)
async def delete_order(order_id: int, repo: OrderRepository = Depends(get_repository)):
    """Delete one order."""
    deleted = repo.delete(order_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Order not found")
    return MutationResponse(deleted=deleted)


@router.delete("/", response_model=MutationResponse)
async def clear_orders(
    confirm: bool = Query(False, description="Must be true; the operation cannot be undone"),
    repo: OrderRepository = Depends(get_repository),
):
    """Delete every order and restart id numbering at 1."""
    if not confirm:
        raise HTTPException(status_code=400, detail="Pass confirm=true to clear all orders")
    return MutationResponse(deleted=repo.clear_all())
