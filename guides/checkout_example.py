"""Example wiring the checkout and payment sagas to in-memory services.

Run directly to execute a checkout, or point the CLI at ``build_engine``::

    sagaflow workflow list guides.checkout_example:build_engine
    sagaflow workflow run guides.checkout_example:build_engine payment \
        --input '{"order_id": 1, "customer_id": 7, "amount": "42.50", "payment_method_id": 3}'
"""

import asyncio
import itertools
from decimal import Decimal

from sagaflow import StepError, create_engine, default_options, load_config
from sagaflow.workflows import CheckoutState, checkout_workflow, payment_workflow
from sagaflow.workflows.checkout import CartItem, PricingResult


class Shop:
    """Cart, inventory, pricing, order and payment services in one object."""

    def __init__(self):
        self.stock = {101: 5, 102: 1}
        self.orders = {}
        self._ids = itertools.count(1)

    async def get_cart(self, cart_id):
        return [
            CartItem(product_id=1, sku_id=101, quantity=2, price=Decimal("10.00")),
            CartItem(product_id=2, sku_id=102, quantity=1, price=Decimal("25.00")),
        ]

    async def validate_cart(self, cart_id):
        return None

    async def check_availability(self, sku_id, quantity):
        return self.stock.get(sku_id, 0) >= quantity

    async def reserve_inventory(self, sku_id, quantity):
        self.stock[sku_id] -= quantity

    async def release_inventory(self, sku_id, quantity):
        self.stock[sku_id] += quantity

    async def calculate_order_pricing(self, items, customer_id, shipping_address):
        subtotal = sum((item.price * item.quantity for item in items), Decimal("0"))
        tax = (subtotal * Decimal("0.08")).quantize(Decimal("0.01"))
        shipping = Decimal("5.00")
        return PricingResult(
            subtotal=subtotal, tax_amount=tax, shipping_cost=shipping, total=subtotal + tax + shipping
        )

    async def create_order(self, customer_id, items, shipping_address, billing_address, total):
        order_id = next(self._ids)
        self.orders[order_id] = "created"
        return order_id

    async def cancel_order(self, order_id):
        self.orders[order_id] = "cancelled"

    async def validate_payment_method(self, payment_method_id, customer_id):
        return None

    async def authorize_payment(self, payment_method_id, amount):
        return f"auth-{next(self._ids)}"

    async def capture_payment(self, authorization_id, amount):
        return f"cap-{next(self._ids)}"

    async def void_authorization(self, authorization_id):
        return None

    async def refund_payment(self, capture_id, amount):
        return None


def build_engine(shop=None):
    shop = shop or Shop()
    config = load_config()
    options = default_options(config)
    engine = create_engine(config)
    engine.register_workflow(checkout_workflow(shop, shop, shop, shop, options))
    engine.register_workflow(payment_workflow(shop, options))
    return engine


async def main():
    shop = Shop()
    engine = build_engine(shop)

    result = await engine.execute("checkout", CheckoutState(customer_id=7, cart_id=1))
    print(f"Checkout {result.status.value}: order {result.output.order_id}, total {result.output.total}")
    print(f"Stock after checkout: {shop.stock}")

    # SKU 102 is now sold out, so the second checkout rolls back
    try:
        await engine.execute("checkout", CheckoutState(customer_id=8, cart_id=2))
    except StepError as exc:
        print(f"Checkout {exc.execution.status.value}: {exc}")
        print(f"Stock after rollback: {shop.stock}")


if __name__ == "__main__":
    asyncio.run(main())
