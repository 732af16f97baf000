from decimal import Decimal

import pytest

from storefront.application.schemas import CartLine, OrderRead
from storefront.application.service import OrderService
from storefront.domain.errors import NotFound
from storefront.domain.models import AdminNotification, Product


def line(product_id, quantity):
    return CartLine(product_id=product_id, quantity=quantity)


def test_created_order_round_trips(db, add_product):
    a = add_product(name="A", price="10.00")
    b = add_product(name="B", price="2.25", stock=None)
    service = OrderService(db)
    created = service.create_order("user-1", [line(a, 2), line(b, 4)])

    fetched = service.get_order(created.id)
    assert fetched.total_amount == created.total_amount == Decimal("29.00")
    assert [(i.product_id, i.quantity, i.price) for i in fetched.items] == [
        (a, 2, Decimal("10.00")),
        (b, 4, Decimal("2.25")),
    ]
    assert created.id in [o.id for o in service.list_orders_for_user("user-1")]


def test_unknown_order_is_not_found(db):
    with pytest.raises(NotFound) as exc_info:
        OrderService(db).get_order(12345)
    assert exc_info.value.order_id == 12345


def test_user_listing_is_newest_first_and_scoped(db, add_product):
    p = add_product(stock=None)
    service = OrderService(db)
    first = service.create_order("alice", [line(p, 1)])
    service.create_order("bob", [line(p, 1)])
    second = service.create_order("alice", [line(p, 2)])

    orders = service.list_orders_for_user("alice")
    assert [o.id for o in orders] == [second.id, first.id]
    assert service.list_orders_for_user("nobody") == []


def test_staff_listing_sees_every_user(db, add_product):
    p = add_product(stock=None)
    service = OrderService(db)
    service.create_order("alice", [line(p, 1)])
    service.create_order("bob", [line(p, 1)])
    assert {o.user_id for o in service.list_all_orders()} == {"alice", "bob"}


def test_items_embed_product_display_fields(db, add_product):
    p = add_product(name="Lamp", image="/img/lamp.png", price="30.00")
    service = OrderService(db)
    order = service.create_order("user-1", [line(p, 1)])

    item = OrderRead.model_validate(service.get_order(order.id)).items[0]
    assert item.product.name == "Lamp"
    assert item.product.image == "/img/lamp.png"
    assert item.product_name_snapshot == "Lamp"


def test_order_survives_product_deletion(db, session_factory, add_product):
    p = add_product(name="Discontinued", price="8.00")
    service = OrderService(db)
    order = service.create_order("user-1", [line(p, 1)])

    with session_factory() as other, other.begin():
        other.delete(other.get(Product, p))

    item = OrderRead.model_validate(service.get_order(order.id)).items[0]
    assert item.product is None
    assert item.product_id == p
    assert item.price == Decimal("8.00")
    assert item.product_name_snapshot == "Discontinued"


def test_staff_are_notified_of_new_orders(db, session_factory, add_product):
    p = add_product(price="12.00")
    order = OrderService(db).create_order("user-1", [line(p, 1)])

    with session_factory() as session:
        notifications = session.query(AdminNotification).all()
    assert len(notifications) == 1
    assert order.order_number in notifications[0].title
    assert "$12.00" in notifications[0].description
    assert notifications[0].category == "Orders"


def test_failed_notification_keeps_the_order(db, engine, add_product, row_counts, stock_of):
    p = add_product(name="Mug", price="6.50", stock=4)
    AdminNotification.__table__.drop(engine)

    order = OrderService(db).create_order("user-1", [line(p, 2)])
    db.close()

    body = OrderRead.model_validate(order)
    assert body.total_amount == Decimal("13.00")
    assert body.items[0].product.name == "Mug"
    assert row_counts() == (1, 1)
    assert stock_of(p) == 2
