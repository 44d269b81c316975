"""BDD tests for checkout pricing."""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from purchasing.pricing.engine import (
    FulfillmentMode,
    LineItem,
    PriceTier,
    ProductSnapshot,
    compute_pricing,
)
from purchasing.settings.provider import ShippingConfig

scenarios("features/checkout_pricing.feature")


@pytest.fixture()
def pricing():
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the tax rate is {rate:d} percent"))
def _tax_rate(pricing, rate):
    pricing["tax_rate"] = rate


@given(parsers.cfparse("delivery costs {cost:d} below a free shipping threshold of {threshold:d}"))
def _shipping(pricing, cost, threshold):
    pricing["shipping"] = ShippingConfig(free_threshold=threshold, default_cost=cost)


@given(
    parsers.cfparse("a product priced {price:d} with wholesale price {wholesale:d} on sale at {discount:d} percent"),
    target_fixture="product",
)
def _product_on_sale(price, wholesale, discount):
    return ProductSnapshot(
        product_id="prod-001",
        name="Aceite de oliva 1L",
        price=price,
        wholesale_price=wholesale,
        on_sale=True,
        discount_percentage=discount,
    )


@given(parsers.re(r"a product priced (?P<price>\d+)$"), target_fixture="product")
def _product(price):
    return ProductSnapshot(product_id="prod-001", name="Aceite de oliva 1L", price=int(price))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('a {buyer} buys {quantity:d} for "{mode}"'), target_fixture="breakdown")
def _buy(pricing, product, buyer, quantity, mode):
    tier = PriceTier.WHOLESALE if buyer == "distributor" else PriceTier.RETAIL
    return compute_pricing(
        [LineItem(product.product_id, quantity)],
        tier,
        {product.product_id: product},
        FulfillmentMode(mode),
        pricing["tax_rate"],
        pricing["shipping"],
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the subtotal is {amount:d}"))
def _subtotal(breakdown, amount):
    assert breakdown.items_subtotal == amount


@then(parsers.cfparse("the tax is {amount:d}"))
def _tax(breakdown, amount):
    assert breakdown.tax == amount


@then(parsers.cfparse("the shipping is {amount:d}"))
def _shipping_amount(breakdown, amount):
    assert breakdown.shipping == amount


@then(parsers.cfparse("the total is {amount:d}"))
def _total(breakdown, amount):
    assert breakdown.total == amount


@then(parsers.cfparse("the unit price is {amount:d}"))
def _unit_price(breakdown, amount):
    assert breakdown.lines[0].unit_price == amount
