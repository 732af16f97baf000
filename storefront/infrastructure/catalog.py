from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.domain.errors import InsufficientStock, ProductNotFound
from storefront.domain.models import Product


class SqlCatalog:
    """Catalog collaborator backed by the ``products`` table.

    Every method runs inside the caller's transaction; none of them commit.
    """

    def get_product(self, db: Session, product_id: int, lock: bool = False) -> Product:
        stmt = select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        if lock:
            stmt = stmt.with_for_update()
        product = db.execute(stmt).scalar_one_or_none()
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def get_products(self, db: Session, product_ids: Iterable[int], lock: bool = False) -> Dict[int, Product]:
        """Load several products at once; missing ids are simply absent from the result.

        With ``lock`` the rows are locked in ascending id order so two checkouts
        touching the same products cannot deadlock each other.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        return {p.id: p for p in db.execute(stmt).scalars()}

    def decrement_stock(self, db: Session, product_id: int, amount: int) -> None:
        """Atomically take ``amount`` units; never lets stock go below zero.

        Products with untracked (NULL) stock are left alone.
        """
        result = db.execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.stock.is_not(None))
            .where(Product.stock >= amount)
            .values(stock=Product.stock - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        product = db.execute(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFound(product_id)
        if product.stock is None:
            return
        raise InsufficientStock(product_id, product.stock, amount)
