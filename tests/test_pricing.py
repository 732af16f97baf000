from decimal import Decimal

import pytest

from storefront.application.pricing import CartPricer
from storefront.application.schemas import CartLine
from storefront.domain.errors import EmptyCart, InsufficientStock, InvalidQuantity, ProductNotFound
from storefront.infrastructure.catalog import SqlCatalog


@pytest.fixture
def pricer():
    return CartPricer(SqlCatalog())


def line(product_id, quantity):
    return CartLine(product_id=product_id, quantity=quantity)


def test_empty_cart_is_rejected(db, pricer):
    with pytest.raises(EmptyCart):
        pricer.price(db, [])


@pytest.mark.parametrize("quantity", [0, -1, -50])
def test_non_positive_quantity_is_rejected(db, pricer, add_product, quantity):
    p = add_product()
    with pytest.raises(InvalidQuantity) as exc_info:
        pricer.price(db, [line(p, quantity)])
    assert exc_info.value.quantity == quantity


@pytest.mark.parametrize("quantity", [2**31, 10**20])
def test_quantity_beyond_column_range_is_rejected(db, pricer, add_product, quantity):
    p = add_product(stock=None)
    with pytest.raises(InvalidQuantity) as exc_info:
        pricer.price(db, [line(p, quantity)])
    assert exc_info.value.quantity == quantity


def test_largest_quantity_is_accepted(db, pricer, add_product):
    p = add_product(price="1.00", stock=None)
    assert pricer.price(db, [line(p, 2**31 - 1)]).total_amount == Decimal("2147483647.00")


def test_total_beyond_column_range_is_rejected(db, pricer, add_product):
    p = add_product(price="9999.99", stock=None)
    q = add_product(price="0.00", stock=None)
    with pytest.raises(InvalidQuantity) as exc_info:
        pricer.price(db, [line(q, 1), line(p, 2**31 - 1)])
    assert exc_info.value.product_id == p


def test_quantity_is_checked_before_catalog_lookup(db, pricer):
    # product 999 does not exist, but the bad quantity wins
    with pytest.raises(InvalidQuantity):
        pricer.price(db, [line(999, 0)])


def test_missing_product_fails_whole_cart(db, pricer, add_product):
    p = add_product()
    with pytest.raises(ProductNotFound) as exc_info:
        pricer.price(db, [line(p, 1), line(4242, 1)])
    assert exc_info.value.product_id == 4242


def test_out_of_stock_reports_available_and_requested(db, pricer, add_product):
    q = add_product(name="Q", stock=0)
    with pytest.raises(InsufficientStock) as exc_info:
        pricer.price(db, [line(q, 1)])
    err = exc_info.value
    assert (err.product_id, err.available, err.requested) == (q, 0, 1)


def test_duplicate_lines_are_summed_for_stock(db, pricer, add_product):
    p = add_product(stock=3)
    with pytest.raises(InsufficientStock) as exc_info:
        pricer.price(db, [line(p, 2), line(p, 2)])
    assert exc_info.value.requested == 4


def test_untracked_stock_is_unlimited(db, pricer, add_product):
    p = add_product(price="2.50", stock=None)
    priced = pricer.price(db, [line(p, 1000)])
    assert priced.total_amount == Decimal("2500.00")


def test_stock_is_ignored_when_not_checked(db, add_product):
    q = add_product(stock=0)
    priced = CartPricer(SqlCatalog(), check_stock=False).price(db, [line(q, 3)])
    assert priced.total_amount == Decimal("30.00")


def test_total_uses_catalog_prices_in_exact_decimal(db, pricer, add_product):
    a = add_product(name="A", price="0.10", stock=None)
    b = add_product(name="B", price="0.20", stock=None)
    priced = pricer.price(db, [line(a, 3), line(b, 1)])
    # 0.1 * 3 + 0.2 would be 0.5000000000000001 in binary floats
    assert priced.total_amount == Decimal("0.50")
    assert [i.price for i in priced.items] == [Decimal("0.10"), Decimal("0.20")]
    assert priced.total_amount == sum(i.line_total for i in priced.items)


def test_original_price_never_enters_total(db, pricer, add_product):
    p = add_product(price="10.00", original_price="25.00")
    priced = pricer.price(db, [line(p, 2)])
    assert priced.total_amount == Decimal("20.00")


def test_pricing_is_repeatable(db, pricer, add_product):
    p = add_product(price="19.99", stock=10)
    r = add_product(price="3.35", stock=None)
    cart = [line(p, 3), line(r, 7)]
    first = pricer.price(db, cart)
    second = pricer.price(db, cart)
    assert first == second
    assert first.total_amount == Decimal("83.42")


def test_items_carry_display_snapshot(db, pricer, add_product):
    p = add_product(name="Headphones", image="/img/hp.png")
    priced = pricer.price(db, [line(p, 1)])
    assert priced.items[0].product_name == "Headphones"
    assert priced.items[0].product_image == "/img/hp.png"
