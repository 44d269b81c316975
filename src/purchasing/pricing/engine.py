"""Server-side order pricing.

``compute_pricing`` is a pure function of its inputs: the same lines,
catalog snapshot, tier, fulfillment mode, tax rate and shipping thresholds
always yield the same breakdown. All amounts are whole currency units and
every rounding step rounds half up.

Prices submitted by clients never enter the computation.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from purchasing.domain import logger
from purchasing.errors import ProductNotFound
from purchasing.settings.provider import ConfigProvider, ShippingConfig


class PriceTier(Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"


class FulfillmentMode(Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: str
    name: str
    price: int
    wholesale_price: int | None = None
    on_sale: bool = False
    discount_percentage: int = 0


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    name: str
    quantity: int
    unit_price: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PricingBreakdown:
    items_subtotal: int
    tax: int
    shipping: int
    total: int
    tax_rate: float
    lines: tuple[PricedLine, ...] = field(default_factory=tuple)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def unit_price_for(product: ProductSnapshot, price_tier: PriceTier) -> int:
    """Tier base price, then the sale discount applied on top of it."""
    base = product.price
    if price_tier is PriceTier.WHOLESALE and product.wholesale_price is not None:
        base = product.wholesale_price

    if product.on_sale and product.discount_percentage:
        factor = (Decimal(100) - Decimal(product.discount_percentage)) / Decimal(100)
        return round_half_up(Decimal(base) * factor)
    return base


def shipping_for(items_subtotal: int, fulfillment_mode: FulfillmentMode, shipping_config: ShippingConfig) -> int:
    if fulfillment_mode is FulfillmentMode.PICKUP:
        return 0
    if items_subtotal >= shipping_config.free_threshold:
        return 0
    return shipping_config.default_cost


def compute_pricing(
    line_items: Iterable[LineItem],
    price_tier: PriceTier,
    catalog: Mapping[str, ProductSnapshot],
    fulfillment_mode: FulfillmentMode,
    tax_rate: float,
    shipping_config: ShippingConfig,
) -> PricingBreakdown:
    lines = []
    for item in line_items:
        product = catalog.get(item.product_id)
        if product is None:
            raise ProductNotFound(item.product_id)
        lines.append(
            PricedLine(
                product_id=item.product_id,
                name=product.name,
                quantity=item.quantity,
                unit_price=unit_price_for(product, price_tier),
            )
        )

    items_subtotal = sum(line.line_total for line in lines)
    tax = round_half_up(Decimal(items_subtotal) * Decimal(str(tax_rate)) / Decimal(100))
    shipping = shipping_for(items_subtotal, fulfillment_mode, shipping_config)

    return PricingBreakdown(
        items_subtotal=items_subtotal,
        tax=tax,
        shipping=shipping,
        total=items_subtotal + tax + shipping,
        tax_rate=tax_rate,
        lines=tuple(lines),
    )


class PriceEngine:
    """Prices orders against the live tax and shipping configuration."""

    def __init__(self, config_provider: ConfigProvider):
        self.config_provider = config_provider

    def price(
        self,
        line_items: Iterable[LineItem],
        price_tier: PriceTier,
        catalog: Mapping[str, ProductSnapshot],
        fulfillment_mode: FulfillmentMode,
        client_prices: Mapping[str, float] | None = None,
    ) -> PricingBreakdown:
        breakdown = compute_pricing(
            line_items,
            price_tier,
            catalog,
            fulfillment_mode,
            tax_rate=self.config_provider.get_tax_rate(),
            shipping_config=self.config_provider.get_shipping_config(),
        )

        for line in breakdown.lines:
            submitted = (client_prices or {}).get(line.product_id)
            if submitted is not None and submitted != line.unit_price:
                logger.info(
                    "Client price overridden by server price",
                    product_id=line.product_id,
                    client_price=submitted,
                    server_price=line.unit_price,
                )

        return breakdown
