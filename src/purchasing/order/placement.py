"""Order placement — command and handler.

Pricing and stock reservation happen before this command is processed (see
``purchasing.order.service``); the handler only records the priced order.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from purchasing.domain import purchasing
from purchasing.order.order import Order, OrderType


@purchasing.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=255)
    items = Text(required=True)  # JSON: list of {product_id, name, quantity, unit_price}
    fulfillment_mode = String(required=True, max_length=20)
    shipping_address = Text()  # JSON: address dict
    pickup_location = Text()  # JSON: pickup dict
    payment_method = String(required=True, max_length=20)
    order_type = String(max_length=3, default=OrderType.B2C.value)
    items_subtotal = Integer(required=True)
    tax = Integer(required=True)
    shipping = Integer(required=True)
    total = Integer(required=True)
    tax_rate = Float(required=True)


@purchasing.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            items_data=json.loads(command.items),
            fulfillment_mode=command.fulfillment_mode,
            payment_method=command.payment_method,
            items_subtotal=command.items_subtotal,
            tax=command.tax,
            shipping=command.shipping,
            total=command.total,
            tax_rate=command.tax_rate,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            pickup_location=json.loads(command.pickup_location) if command.pickup_location else None,
            order_type=command.order_type or OrderType.B2C.value,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
