"""Pydantic request/response schemas for the purchasing API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    street: str
    city: str
    region: str | None = None
    postal_code: str | None = None
    notes: str | None = None


class PickupLocationSchema(BaseModel):
    name: str
    address: str
    scheduled_date: str | None = None
    notes: str | None = None


class OrderLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    # Display price from the client; ignored for charging
    price: float | None = None


# ---------------------------------------------------------------------------
# Order requests / responses
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    items: list[OrderLineRequest] = Field(min_length=1)
    fulfillment_mode: str = "delivery"
    payment_method: str = "webpay"
    shipping_address: ShippingAddressSchema | None = None
    pickup_location: PickupLocationSchema | None = None
    # Client-side totals are accepted for compatibility and ignored
    items_subtotal: float | None = None
    tax: float | None = None
    shipping: float | None = None
    total: float | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "fulfillment_mode": "delivery",
                    "payment_method": "webpay",
                    "shipping_address": {"street": "Av. Providencia 1234", "city": "Santiago"},
                }
            ]
        }
    }


class ChangeStatusRequest(BaseModel):
    status: str
    is_paid: bool = False


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: int


class PaymentResultResponse(BaseModel):
    status: str | None = None
    buy_order: str | None = None
    authorization_code: str | None = None
    amount: int | None = None
    response_code: int | None = None
    card_number: str | None = None
    installments: int | None = None
    payment_type_code: str | None = None
    transaction_date: str | None = None
    refund_id: str | None = None
    refund_amount: int | None = None
    refund_status: str | None = None


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    status: str
    order_type: str
    fulfillment_mode: str
    payment_method: str
    items: list[OrderItemResponse]
    shipping_address: ShippingAddressSchema | None = None
    pickup_location: PickupLocationSchema | None = None
    items_subtotal: int
    tax: int
    shipping: int
    total: int
    tax_rate: float | None = None
    is_paid: bool
    paid_at: datetime | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    payment_result: PaymentResultResponse | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Payment requests / responses
# ---------------------------------------------------------------------------
class TransactionResponse(BaseModel):
    order_id: str
    token: str
    url: str
    redirect_url: str
    buy_order: str
    amount: int
    reused: bool


class PaymentStatusResponse(BaseModel):
    order_id: str
    status: str
    is_paid: bool
    paid_at: datetime | None = None
    total: int
    payment_result: PaymentResultResponse | None = None


class RefundRequest(BaseModel):
    amount: int | None = Field(default=None, gt=0)


class RefundResponse(BaseModel):
    order_id: str
    refund_id: str
    amount: int
    status: str | None = None
    already_refunded: bool


class ConfigureGatewayRequest(BaseModel):
    should_approve: bool = True
    response_code: int = -1
    simulate_timeout: bool = False
    refund_should_succeed: bool = True


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_approve: bool
    response_code: int
    simulate_timeout: bool
    refund_should_succeed: bool


# ---------------------------------------------------------------------------
# Config and catalogue
# ---------------------------------------------------------------------------
class PricingConfigResponse(BaseModel):
    tax_rate: float
    free_shipping_threshold: int
    default_shipping_cost: int


class UpdateConfigRequest(BaseModel):
    value: bool | int | float | str


class ConfigValueResponse(BaseModel):
    key: str
    value: bool | int | float | str


class SyncProductRequest(BaseModel):
    name: str
    price: int = Field(ge=0)
    wholesale_price: int | None = Field(default=None, ge=0)
    on_sale: bool = False
    discount_percentage: int = Field(default=0, ge=0, le=100)
    stock_quantity: int = Field(ge=0)
    is_active: bool = True


class ProductIdResponse(BaseModel):
    product_id: str
