"""Atomic order persistence.

One database transaction locks the catalog rows, re-prices the cart against
them, inserts the order header and its items, and takes the stock. Either
all of it commits or none of it does.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, selectinload

from storefront.application.pricing import CartPricer, PricedCart
from storefront.application.schemas import CartLine
from storefront.core import get_logger
from storefront.domain.errors import StorageRejected, StorageUnavailable, TransactionAborted
from storefront.domain.models import Order, OrderItem
from storefront.domain.status import OrderStatus
from storefront.infrastructure.catalog import SqlCatalog
from storefront.infrastructure.db import WRITE_OPTIONS

logger = get_logger(__name__)


def generate_order_number() -> str:
    """Human facing reference in format ORD-YYYY-XXXXXXXX."""
    year = datetime.now(timezone.utc).year
    return f"ORD-{year}-{uuid.uuid4().hex[:8].upper()}"


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into typed order errors.

    Lock and statement timeouts, serialization failures, deadlocks and busy
    SQLite databases surface as OperationalError and mean the transaction was
    rolled back; a dropped connection means storage itself is unavailable.
    Anything else the database refuses (DataError, ProgrammingError, ...) will
    fail the same way again and is reported as StorageRejected.
    """
    try:
        yield
    except DBAPIError as e:
        if e.connection_invalidated or isinstance(e, InterfaceError):
            logger.error(f"Storage unavailable during {operation}: {e.orig!r}")
            raise StorageUnavailable() from e
        if isinstance(e, (OperationalError, IntegrityError)):
            logger.error(f"Transaction aborted during {operation}: {e.orig!r}")
            raise TransactionAborted() from e
        logger.error(f"Storage rejected {operation}: {e.orig!r}")
        raise StorageRejected() from e


def begin(db: Session, write: bool = False):
    """Start an explicit transaction.

    A transaction left open by autobegin (a lazy load, a caller's own work) is
    rolled back first; nothing it holds gets committed on its behalf.
    """
    if db.in_transaction():
        db.rollback()
    transaction = db.begin()
    if write:
        db.connection(execution_options=WRITE_OPTIONS)
    return transaction


def order_with_items():
    """Order query that eagerly loads items and their live catalog rows."""
    return (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product))
        .execution_options(populate_existing=True)
    )


class OrderWriter:
    def __init__(self, db: Session, catalog: SqlCatalog, track_stock: bool = True):
        self.db = db
        self.catalog = catalog
        self.pricer = CartPricer(catalog, check_stock=track_stock)
        self.track_stock = track_stock

    def persist(
        self,
        user_id: str,
        lines: Sequence[CartLine],
        shipping_address: Optional[Dict[str, Any]] = None,
    ) -> Order:
        with storage_errors("order persistence"):
            with begin(self.db, write=True):
                # Authoritative read: rows stay locked until commit
                priced = self.pricer.price(self.db, lines, lock=True)
                order = self._insert(user_id, priced, shipping_address)
                if self.track_stock:
                    for product_id, quantity in priced.requested_quantities.items():
                        self.catalog.decrement_stock(self.db, product_id, quantity)
                self.db.flush()
                # Loaded in full before commit; callers never read it back afterwards
                order = self.db.execute(order_with_items().where(Order.id == order.id)).scalar_one()

        logger.info(
            f"Order {order.order_number} committed",
            extra={'extra_fields': {
                'order_id': order.id,
                'total_amount': str(order.total_amount),
                'items': len(order.items),
                'stock_tracked': self.track_stock,
            }},
        )
        return order

    def _insert(self, user_id: str, priced: PricedCart, shipping_address: Optional[Dict[str, Any]]) -> Order:
        order = Order(
            order_number=generate_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=priced.total_amount,
            shipping_address=shipping_address or {},
        )
        for draft in priced.items:
            order.items.append(
                OrderItem(
                    product_id=draft.product_id,
                    quantity=draft.quantity,
                    price=draft.price,
                    product_name_snapshot=draft.product_name,
                    product_image_snapshot=draft.product_image,
                )
            )
        self.db.add(order)
        self.db.flush()  # assign ids
        return order
