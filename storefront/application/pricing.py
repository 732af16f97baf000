"""Validation and pricing of a proposed cart.

The pricer only reads. It runs once before the order transaction as an
early check, and again inside it against locked catalog rows; the second
result is the one that gets persisted.
"""

from collections import OrderedDict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from storefront.application.schemas import CartLine
from storefront.domain.errors import EmptyCart, InsufficientStock, InvalidQuantity, ProductNotFound
from storefront.infrastructure.catalog import SqlCatalog

CENTS = Decimal("0.01")
# Column ranges: order_items.quantity is a 32-bit integer, orders.total_amount is Numeric(12,2)
MAX_QUANTITY = 2**31 - 1
MAX_TOTAL = Decimal("9999999999.99")


@dataclass(frozen=True)
class DraftOrderItem:
    product_id: int
    quantity: int
    price: Decimal
    product_name: Optional[str] = None
    product_image: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class PricedCart:
    items: List[DraftOrderItem]
    total_amount: Decimal

    @property
    def requested_quantities(self) -> "OrderedDict[int, int]":
        """Units per product, summed across duplicate lines."""
        totals: "OrderedDict[int, int]" = OrderedDict()
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals


class CartPricer:
    def __init__(self, catalog: SqlCatalog, check_stock: bool = True):
        self.catalog = catalog
        # Without stock tracking there is nothing to run out of
        self.check_stock = check_stock

    def price(self, db: Session, lines: Sequence[CartLine], lock: bool = False) -> PricedCart:
        if not lines:
            raise EmptyCart()

        for line in lines:
            if not 1 <= line.quantity <= MAX_QUANTITY:
                raise InvalidQuantity(line.product_id, line.quantity)

        products = self.catalog.get_products(db, (line.product_id for line in lines), lock=lock)

        requested: "OrderedDict[int, int]" = OrderedDict()
        items: List[DraftOrderItem] = []
        total = Decimal("0")
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)

            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if requested[product.id] > MAX_QUANTITY:
                raise InvalidQuantity(product.id, requested[product.id])
            if self.check_stock and product.stock is not None and product.stock < requested[product.id]:
                raise InsufficientStock(product.id, product.stock, requested[product.id])

            unit_price = Decimal(product.price)
            items.append(
                DraftOrderItem(
                    product_id=product.id,
                    quantity=line.quantity,
                    price=unit_price,
                    product_name=product.name,
                    product_image=product.image,
                )
            )
            total += unit_price * line.quantity
            if total > MAX_TOTAL:
                raise InvalidQuantity(product.id, line.quantity)

        return PricedCart(items=items, total_amount=total.quantize(CENTS, rounding=ROUND_HALF_UP))
