"""Checkout saga against in-memory cart, inventory, pricing and order services."""

from decimal import Decimal

import pytest

from sagaflow import Engine, Status, StepError
from sagaflow.workflows import CHECKOUT_WORKFLOW_ID, CheckoutState, checkout_workflow
from sagaflow.workflows.checkout import CartItem, PricingResult


class FakeShop:
    def __init__(self, items=None, stock=None):
        self.items = items if items is not None else [
            CartItem(product_id=1, sku_id=101, quantity=2, price=Decimal("10.00")),
            CartItem(product_id=2, sku_id=102, quantity=1, price=Decimal("5.50")),
        ]
        self.stock = stock if stock is not None else {101: 10, 102: 10}
        self.reserve_failures = {}
        self.order_error = None
        self.release_error = None
        self.reserve_calls = []
        self.orders = {}

    async def get_cart(self, cart_id):
        return self.items

    async def validate_cart(self, cart_id):
        return None

    async def check_availability(self, sku_id, quantity):
        return self.stock[sku_id] >= quantity

    async def reserve_inventory(self, sku_id, quantity):
        self.reserve_calls.append((sku_id, quantity))
        if self.reserve_failures.get(sku_id, 0) > 0:
            self.reserve_failures[sku_id] -= 1
            raise RuntimeError(f"reservation service unavailable for {sku_id}")
        self.stock[sku_id] -= quantity

    async def release_inventory(self, sku_id, quantity):
        if self.release_error is not None:
            raise self.release_error
        self.stock[sku_id] += quantity

    async def calculate_order_pricing(self, items, customer_id, shipping_address):
        subtotal = sum((i.price * i.quantity for i in items), Decimal("0"))
        return PricingResult(
            subtotal=subtotal,
            tax_amount=Decimal("2.55"),
            shipping_cost=Decimal("4.00"),
            total=subtotal + Decimal("6.55"),
        )

    async def create_order(self, customer_id, items, shipping_address, billing_address, total):
        if self.order_error is not None:
            raise self.order_error
        order_id = len(self.orders) + 1
        self.orders[order_id] = "created"
        return order_id

    async def cancel_order(self, order_id):
        self.orders[order_id] = "cancelled"


@pytest.fixture
def shop():
    return FakeShop()


@pytest.fixture
def engine(shop):
    engine = Engine()
    engine.register_workflow(checkout_workflow(shop, shop, shop, shop))
    return engine


def _state():
    return CheckoutState(customer_id=7, cart_id=3, payment_method_id=9)


@pytest.mark.asyncio
async def test_checkout_completes(engine, shop):
    execution = await engine.execute(CHECKOUT_WORKFLOW_ID, _state())

    assert execution.status == Status.COMPLETED
    state = execution.output
    assert state.order_id == 1
    assert state.order_created and state.inventory_reserved and state.pricing_calculated
    assert state.reserved_skus == [101, 102]
    assert state.subtotal == Decimal("25.50")
    assert state.total == Decimal("32.05")
    assert shop.stock == {101: 8, 102: 9}
    assert [r.name for r in execution.activities] == [
        "ValidateCart",
        "ReserveInventory",
        "CalculatePricing",
        "CreateOrder",
    ]


@pytest.mark.asyncio
async def test_duplicate_sku_lines_reserved_once(shop, engine):
    shop.items = [
        CartItem(product_id=1, sku_id=101, quantity=1),
        CartItem(product_id=1, sku_id=101, quantity=2),
    ]

    execution = await engine.execute(CHECKOUT_WORKFLOW_ID, _state())

    assert shop.reserve_calls == [(101, 3)]
    assert execution.output.reserved_skus == [101]


@pytest.mark.asyncio
async def test_empty_cart_fails_without_retry(shop, engine):
    shop.items = []

    with pytest.raises(StepError) as exc_info:
        await engine.execute(CHECKOUT_WORKFLOW_ID, _state())

    assert exc_info.value.activity == "ValidateCart"
    assert exc_info.value.attempts == 1
    assert exc_info.value.execution.status == Status.COMPENSATED


@pytest.mark.asyncio
async def test_insufficient_stock_reserves_nothing(shop, engine):
    shop.stock[102] = 0

    with pytest.raises(StepError, match="insufficient inventory for SKU 102") as exc_info:
        await engine.execute(CHECKOUT_WORKFLOW_ID, _state())

    assert exc_info.value.attempts == 1
    assert shop.reserve_calls == []
    assert shop.stock == {101: 10, 102: 0}


@pytest.mark.asyncio
async def test_partial_reservation_released_before_retry(shop, engine):
    shop.reserve_failures[102] = 1

    execution = await engine.execute(CHECKOUT_WORKFLOW_ID, _state())

    assert execution.status == Status.COMPLETED
    assert execution.activities[1].attempts == 2
    assert shop.reserve_calls == [(101, 2), (102, 1), (101, 2), (102, 1)]
    assert shop.stock == {101: 8, 102: 9}


@pytest.mark.asyncio
async def test_order_failure_releases_inventory(shop, engine):
    shop.order_error = StepError("order service rejected the order", retryable=False)
    state = _state()

    with pytest.raises(StepError) as exc_info:
        await engine.execute(CHECKOUT_WORKFLOW_ID, state)

    assert exc_info.value.activity == "CreateOrder"
    assert exc_info.value.execution.status == Status.COMPENSATED
    assert shop.stock == {101: 10, 102: 10}
    assert state.reserved_skus == []
    assert state.inventory_reserved is False
    assert shop.orders == {}


@pytest.mark.asyncio
async def test_release_failure_leaves_execution_failed(shop, engine):
    shop.order_error = StepError("order service rejected the order", retryable=False)
    shop.release_error = RuntimeError("inventory service down")
    state = _state()

    with pytest.raises(StepError) as exc_info:
        await engine.execute(CHECKOUT_WORKFLOW_ID, state)

    execution = exc_info.value.execution
    assert execution.status == Status.FAILED
    assert execution.compensation_error.activity == "ReserveInventory"
    assert state.reserved_skus == [101, 102]


@pytest.mark.asyncio
async def test_wrong_payload_type_rejected(engine):
    with pytest.raises(StepError, match="invalid input type dict, expected CheckoutState"):
        await engine.execute(CHECKOUT_WORKFLOW_ID, {"cart_id": 3})
