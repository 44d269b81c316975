"""FastAPI routes for the purchasing context — orders, payment, config and catalogue sync."""

import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from purchasing.api.schemas import (
    ChangeStatusRequest,
    ConfigureGatewayRequest,
    ConfigValueResponse,
    GatewayConfigResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentResultResponse,
    PaymentStatusResponse,
    PickupLocationSchema,
    PlaceOrderRequest,
    PricingConfigResponse,
    ProductIdResponse,
    RefundRequest,
    RefundResponse,
    ShippingAddressSchema,
    SyncProductRequest,
    TransactionResponse,
    UpdateConfigRequest,
)
from purchasing.api.security import current_principal, require_admin
from purchasing.catalogue.sync import apply_product_snapshot
from purchasing.gateway import get_gateway
from purchasing.gateway.fake_adapter import FakeGateway
from purchasing.order.order import Order
from purchasing.order.service import CheckoutLine, CheckoutRequest, OrderService
from purchasing.payment.adapter import PaymentGatewayAdapter
from purchasing.payment.callback import handle_callback
from purchasing.principal import Principal
from purchasing.settings.management import update_config_value
from purchasing.settings.provider import get_config_provider


def _payment_result(order: Order) -> PaymentResultResponse | None:
    result = order.payment_result
    if result is None:
        return None
    return PaymentResultResponse(
        status=result.status,
        buy_order=result.buy_order,
        authorization_code=result.authorization_code,
        amount=result.amount,
        response_code=result.response_code,
        card_number=result.card_number,
        installments=result.installments,
        payment_type_code=result.payment_type_code,
        transaction_date=result.transaction_date,
        refund_id=result.refund_id,
        refund_amount=result.refund_amount,
        refund_status=result.refund_status,
    )


def _order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    pickup = order.pickup_location
    return OrderResponse(
        id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        order_type=order.order_type,
        fulfillment_mode=order.fulfillment_mode,
        payment_method=order.payment_method,
        items=[
            OrderItemResponse(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
        shipping_address=ShippingAddressSchema(
            street=address.street,
            city=address.city,
            region=address.region,
            postal_code=address.postal_code,
            notes=address.notes,
        )
        if address
        else None,
        pickup_location=PickupLocationSchema(
            name=pickup.name,
            address=pickup.address,
            scheduled_date=pickup.scheduled_date,
            notes=pickup.notes,
        )
        if pickup
        else None,
        items_subtotal=order.items_subtotal,
        tax=order.tax,
        shipping=order.shipping,
        total=order.total,
        tax_rate=order.tax_rate,
        is_paid=order.is_paid,
        paid_at=order.paid_at,
        is_delivered=order.is_delivered,
        delivered_at=order.delivered_at,
        payment_result=_payment_result(order),
        created_at=order.created_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, principal: Principal = Depends(current_principal)) -> OrderResponse:
    """Create an order. Prices, tax and shipping are always computed server-side."""
    request = CheckoutRequest(
        lines=[CheckoutLine(product_id=line.product_id, quantity=line.quantity, client_price=line.price) for line in body.items],
        fulfillment_mode=body.fulfillment_mode,
        payment_method=body.payment_method,
        shipping_address=body.shipping_address.model_dump(exclude_none=True) if body.shipping_address else None,
        pickup_location=body.pickup_location.model_dump(exclude_none=True) if body.pickup_location else None,
    )
    order = await run_in_threadpool(OrderService().place_order, principal, request)
    return _order_response(order)


@order_router.get("", response_model=list[OrderResponse])
async def all_orders(principal: Principal = Depends(require_admin)) -> list[OrderResponse]:
    """Every order in the store, newest first."""
    return [_order_response(order) for order in OrderService().all_orders()]


@order_router.get("/mine", response_model=list[OrderResponse])
async def my_orders(principal: Principal = Depends(current_principal)) -> list[OrderResponse]:
    return [_order_response(order) for order in OrderService().orders_for(principal)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, principal: Principal = Depends(current_principal)) -> OrderResponse:
    return _order_response(OrderService().get_order(order_id, principal))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def change_order_status(
    order_id: str,
    body: ChangeStatusRequest,
    principal: Principal = Depends(require_admin),
) -> OrderResponse:
    order = await run_in_threadpool(OrderService().change_status, order_id, body.status, principal, mark_paid=body.is_paid)
    return _order_response(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, principal: Principal = Depends(current_principal)) -> OrderResponse:
    order = await run_in_threadpool(OrderService().cancel_order, order_id, principal)
    return _order_response(order)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payment", tags=["payment"])


@payment_router.post("/transactions/{order_id}", response_model=TransactionResponse)
async def create_transaction(order_id: str, principal: Principal = Depends(current_principal)) -> TransactionResponse:
    """Open a card gateway transaction and return where to send the browser."""
    handle = await run_in_threadpool(PaymentGatewayAdapter().create_transaction, order_id, principal)
    return TransactionResponse(
        order_id=handle.order_id,
        token=handle.token,
        url=handle.url,
        redirect_url=handle.redirect_url,
        buy_order=handle.buy_order,
        amount=handle.amount,
        reused=handle.reused,
    )


@payment_router.api_route("/callback", methods=["GET", "POST"])
async def gateway_callback(request: Request) -> RedirectResponse:
    """Gateway return URL. Query parameters and form fields are treated the same."""
    params = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        params.update({key: value for key, value in form.items() if isinstance(value, str)})

    result = await run_in_threadpool(handle_callback, params)
    return RedirectResponse(url=result.redirect_url, status_code=303)


@payment_router.get("/status/{order_id}", response_model=PaymentStatusResponse)
async def payment_status(order_id: str, principal: Principal = Depends(current_principal)) -> PaymentStatusResponse:
    order = OrderService().get_order(order_id, principal)
    return PaymentStatusResponse(
        order_id=str(order.id),
        status=order.status,
        is_paid=order.is_paid,
        paid_at=order.paid_at,
        total=order.total,
        payment_result=_payment_result(order),
    )


@payment_router.post("/refund/{order_id}", response_model=RefundResponse)
async def refund_order(
    order_id: str,
    body: RefundRequest | None = None,
    principal: Principal = Depends(require_admin),
) -> RefundResponse:
    outcome = await run_in_threadpool(
        PaymentGatewayAdapter().refund,
        order_id,
        amount=body.amount if body else None,
    )
    return RefundResponse(
        order_id=outcome.order_id,
        refund_id=outcome.refund_id,
        amount=outcome.amount,
        status=outcome.status,
        already_refunded=outcome.already_refunded,
    )


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_approve=body.should_approve,
        response_code=body.response_code,
        simulate_timeout=body.simulate_timeout,
        refund_should_succeed=body.refund_should_succeed,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_approve=gateway.should_approve,
        response_code=gateway.response_code,
        simulate_timeout=gateway.simulate_timeout,
        refund_should_succeed=gateway.refund_should_succeed,
    )


# ---------------------------------------------------------------------------
# Config Router
# ---------------------------------------------------------------------------
config_router = APIRouter(prefix="/config", tags=["config"])


@config_router.get("/pricing", response_model=PricingConfigResponse)
async def pricing_config() -> PricingConfigResponse:
    """Public pricing parameters, for displaying estimates in the storefront."""
    provider = get_config_provider()
    shipping = provider.get_shipping_config()
    return PricingConfigResponse(
        tax_rate=provider.get_tax_rate(),
        free_shipping_threshold=shipping.free_threshold,
        default_shipping_cost=shipping.default_cost,
    )


@config_router.put("/{key}", response_model=ConfigValueResponse)
async def update_config(
    key: str,
    body: UpdateConfigRequest,
    principal: Principal = Depends(require_admin),
) -> ConfigValueResponse:
    value = str(body.value).lower() if isinstance(body.value, bool) else str(body.value)
    result = update_config_value(key, value, modified_by=principal.user_id)
    return ConfigValueResponse(key=key, value=result)


# ---------------------------------------------------------------------------
# Catalogue Router
# ---------------------------------------------------------------------------
catalogue_router = APIRouter(prefix="/catalogue", tags=["catalogue"])


@catalogue_router.put("/products/{product_id}", response_model=ProductIdResponse)
async def sync_product(
    product_id: str,
    body: SyncProductRequest,
    principal: Principal = Depends(require_admin),
) -> ProductIdResponse:
    """Receive a product snapshot pushed by the catalogue service."""
    result = await run_in_threadpool(apply_product_snapshot, product_id=product_id, **body.model_dump())
    return ProductIdResponse(product_id=result)
