from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from storefront.domain.status import OrderStatus

class CartLine(BaseModel):
    product_id: int
    # Range is enforced by the pricing stage so it can report InvalidQuantity
    quantity: int
    class Config:
        extra = "forbid"

class OrderCreate(BaseModel):
    items: list[CartLine]
    shipping_address: Optional[dict[str, Any]] = None
    class Config:
        extra = "forbid"

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    class Config:
        extra = "forbid"

class ProductSummary(BaseModel):
    id: int
    name: str
    image: Optional[str] = None
    price: Decimal
    class Config:
        from_attributes = True

class OrderItemRead(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal
    product_name_snapshot: Optional[str] = None
    product_image_snapshot: Optional[str] = None
    # Live catalog row; None once the product has been deleted
    product: Optional[ProductSummary] = None
    class Config:
        from_attributes = True

class OrderRead(BaseModel):
    id: int
    order_number: str
    user_id: str
    status: str
    total_amount: Decimal
    shipping_address: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemRead]
    class Config:
        from_attributes = True
