from sqlalchemy import select
from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from storefront.application.persistence import OrderWriter, begin, order_with_items, storage_errors
from storefront.application.pricing import CartPricer, PricedCart
from storefront.application.schemas import CartLine
from storefront.core import get_logger
from storefront.domain.errors import NotFound, OrderError
from storefront.domain.models import AdminNotification, Order
from storefront.domain.status import OrderStatus, check_transition
from storefront.infrastructure.catalog import SqlCatalog

logger = get_logger(__name__)


class OrderService:
    def __init__(self, db: Session, catalog: Optional[SqlCatalog] = None, track_stock: bool = True):
        self.db = db
        self.catalog = catalog or SqlCatalog()
        self.track_stock = track_stock
        self.pricer = CartPricer(self.catalog, check_stock=track_stock)
        self.writer = OrderWriter(db, self.catalog, track_stock=track_stock)

    def quote(self, lines: Sequence[CartLine]) -> PricedCart:
        """Price a cart against the current catalog without writing anything."""
        with storage_errors("cart pricing"):
            with begin(self.db):
                priced = self.pricer.price(self.db, lines)
        return priced

    def create_order(
        self,
        user_id: str,
        lines: Sequence[CartLine],
        shipping_address: Optional[Dict[str, Any]] = None,
    ) -> Order:
        logger.info(
            f"Creating order for user {user_id}",
            extra={'extra_fields': {'lines': len(lines)}},
        )
        try:
            # Advisory pass: reject bad carts before taking any locks
            priced = self.quote(lines)
            logger.info(f"Cart priced at {priced.total_amount} for user {user_id}")
            order = self.writer.persist(user_id, lines, shipping_address)
        except OrderError as e:
            log = logger.error if e.transient else logger.warning
            log(
                f"Order creation failed for user {user_id}: {e.code}",
                extra={'extra_fields': e.details},
            )
            raise

        # The order is committed and fully loaded; from here on nothing may fail the call
        self._notify_admins(order.id, order.order_number, order.user_id, order.total_amount)
        return order

    def _notify_admins(self, order_id: int, order_number: str, user_id: str, total_amount: Decimal) -> None:
        """Best-effort staff notification; a failure here never undoes the order.

        Runs in its own session so a rollback cannot expire the caller's order.
        """
        try:
            with Session(self.db.get_bind()) as session, begin(session, write=True):
                session.add(
                    AdminNotification(
                        title=f"New Order: #{order_number}",
                        description=(
                            f"Order #{order_number} by {user_id} "
                            f"for ${total_amount:.2f} has been placed."
                        ),
                        category="Orders",
                    )
                )
        except Exception:
            logger.error(
                f"Failed to create admin notification for order {order_number}",
                extra={'extra_fields': {'order_id': order_id}},
                exc_info=True,
            )

    def get_order(self, order_id: int) -> Order:
        with storage_errors("order lookup"), begin(self.db):
            order = self.db.execute(order_with_items().where(Order.id == order_id)).scalar_one_or_none()
        if order is None:
            raise NotFound(order_id)
        return order

    def list_orders_for_user(self, user_id: str) -> List[Order]:
        stmt = (
            order_with_items()
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        with storage_errors("order listing"), begin(self.db):
            return list(self.db.execute(stmt).scalars())

    def list_all_orders(self) -> List[Order]:
        stmt = order_with_items().order_by(Order.created_at.desc(), Order.id.desc())
        with storage_errors("order listing"), begin(self.db):
            return list(self.db.execute(stmt).scalars())

    def update_status(self, order_id: int, status: OrderStatus) -> Order:
        """Move an order forward through its lifecycle (staff action)."""
        with storage_errors("order status update"):
            with begin(self.db, write=True):
                order = self.db.execute(
                    select(Order).where(Order.id == order_id).with_for_update()
                ).scalar_one_or_none()
                if order is None:
                    raise NotFound(order_id)
                check_transition(OrderStatus(order.status), status)
                previous = order.status
                order.status = OrderStatus(status).value

        logger.info(
            f"Order {order.order_number} moved from {previous} to {order.status}",
            extra={'extra_fields': {'order_id': order.id}},
        )
        return self.get_order(order_id)
