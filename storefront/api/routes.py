from fastapi import APIRouter, Depends

from storefront.api.deps import (
    STAFF_ROLES,
    STATUS_EDITOR_ROLES,
    Caller,
    get_caller,
    get_order_service,
    require_roles,
)
from storefront.application.service import OrderService
from storefront.application.schemas import OrderCreate, OrderRead, OrderStatusUpdate
from storefront.domain.errors import NotFound

router = APIRouter(prefix="/orders", tags=["orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])

@router.post("/", response_model=OrderRead, status_code=201)
def create_order(
    payload: OrderCreate,
    caller: Caller = Depends(get_caller),
    service: OrderService = Depends(get_order_service),
):
    return service.create_order(caller.user_id, payload.items, payload.shipping_address)

@router.get("/", response_model=list[OrderRead])
def list_orders(caller: Caller = Depends(get_caller), service: OrderService = Depends(get_order_service)):
    """The caller's own orders, newest first."""
    return service.list_orders_for_user(caller.user_id)

@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    caller: Caller = Depends(get_caller),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id)
    # Other customers' orders are reported as missing, not forbidden
    if order.user_id != caller.user_id and not caller.is_staff:
        raise NotFound(order_id)
    return order

@admin_router.get("/", response_model=list[OrderRead])
def list_all_orders(
    caller: Caller = Depends(require_roles(*STAFF_ROLES)),
    service: OrderService = Depends(get_order_service),
):
    return service.list_all_orders()

@admin_router.put("/{order_id}", response_model=OrderRead)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    caller: Caller = Depends(require_roles(*STATUS_EDITOR_ROLES)),
    service: OrderService = Depends(get_order_service),
):
    return service.update_status(order_id, payload.status)
