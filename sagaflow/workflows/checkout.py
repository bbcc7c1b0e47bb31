"""Checkout saga: validate cart, reserve stock, price and create the order."""

from __future__ import annotations

import contextlib
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from ..activity import BaseActivity
from ..contracts import ActivityContext
from ..definition import WorkflowBuilder, WorkflowDefinition, WorkflowOptions
from ..errors import StepError
from ._payload import expect_payload, release_each
from .models import Address

logger = structlog.get_logger(__name__)

CHECKOUT_WORKFLOW_ID = "checkout"


class CartItem(BaseModel):
    product_id: int
    sku_id: int
    quantity: int = Field(gt=0)
    price: Decimal = Decimal("0")


class PricingResult(BaseModel):
    """Totals computed for a cart."""

    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total: Decimal


class CheckoutState(BaseModel):
    """Payload carried through the checkout workflow."""

    customer_id: int
    cart_id: int
    cart_items: List[CartItem] = Field(default_factory=list)
    shipping_address: Address = Field(default_factory=Address)
    billing_address: Address = Field(default_factory=Address)
    payment_method_id: Optional[int] = None

    order_id: Optional[int] = None
    reserved_skus: List[int] = Field(default_factory=list)
    inventory_reserved: bool = False
    pricing_calculated: bool = False
    order_created: bool = False

    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    metadata: Dict[str, Any] = Field(default_factory=dict)

    def sku_ids(self) -> List[int]:
        """Distinct SKUs in cart order."""
        return list(dict.fromkeys(item.sku_id for item in self.cart_items))

    def quantity_for(self, sku_id: int) -> int:
        return sum(item.quantity for item in self.cart_items if item.sku_id == sku_id)


class CartService(Protocol):
    async def get_cart(self, cart_id: int) -> List[CartItem]: ...

    async def validate_cart(self, cart_id: int) -> None: ...


class InventoryService(Protocol):
    async def check_availability(self, sku_id: int, quantity: int) -> bool: ...

    async def reserve_inventory(self, sku_id: int, quantity: int) -> None: ...

    async def release_inventory(self, sku_id: int, quantity: int) -> None: ...


class PricingService(Protocol):
    async def calculate_order_pricing(
        self, items: List[CartItem], customer_id: int, shipping_address: Address
    ) -> PricingResult: ...


class OrderService(Protocol):
    async def create_order(
        self,
        customer_id: int,
        items: List[CartItem],
        shipping_address: Address,
        billing_address: Address,
        total: Decimal,
    ) -> int: ...

    async def cancel_order(self, order_id: int) -> None: ...


class ValidateCartActivity(BaseActivity):
    """Validate the cart and load its items into the payload."""

    def __init__(self, cart_service: CartService) -> None:
        super().__init__("ValidateCart", "Validate shopping cart")
        self.cart_service = cart_service

    async def execute(self, ctx: ActivityContext, payload: Any) -> CheckoutState:
        state = expect_payload(payload, CheckoutState)

        await self.cart_service.validate_cart(state.cart_id)
        items = await self.cart_service.get_cart(state.cart_id)
        if not items:
            raise StepError("cart is empty", retryable=False)

        state.cart_items = list(items)
        return state


class ReserveInventoryActivity(BaseActivity):
    """Check availability and reserve stock for every cart item.

    SKUs already reserved by an earlier attempt are skipped. If a
    reservation fails mid-way, the reservations made so far are released
    before the failure propagates.
    """

    def __init__(self, inventory_service: InventoryService) -> None:
        super().__init__("ReserveInventory", "Check and reserve inventory")
        self.inventory_service = inventory_service

    async def execute(self, ctx: ActivityContext, payload: Any) -> CheckoutState:
        state = expect_payload(payload, CheckoutState)
        pending = [sku for sku in state.sku_ids() if sku not in state.reserved_skus]

        for sku_id in pending:
            available = await self.inventory_service.check_availability(
                sku_id, state.quantity_for(sku_id)
            )
            if not available:
                raise StepError(f"insufficient inventory for SKU {sku_id}", retryable=False)

        for sku_id in pending:
            try:
                await self.inventory_service.reserve_inventory(
                    sku_id, state.quantity_for(sku_id)
                )
            except Exception:
                # release failures are logged by _release; report the reservation failure
                with contextlib.suppress(Exception):
                    await self._release(state)
                raise
            state.reserved_skus.append(sku_id)

        state.inventory_reserved = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, CheckoutState)
        if not state.inventory_reserved and not state.reserved_skus:
            return
        await self._release(state)
        state.inventory_reserved = False

    async def _release(self, state: CheckoutState) -> None:
        async def release(sku_id: int) -> None:
            await self.inventory_service.release_inventory(sku_id, state.quantity_for(sku_id))

        try:
            await release_each(state.reserved_skus, release)
        except Exception as exc:
            logger.warning(
                "Failed to release inventory",
                cart_id=state.cart_id,
                error=str(exc),
                still_held=list(state.reserved_skus),
            )
            raise


class CalculatePricingActivity(BaseActivity):
    def __init__(self, pricing_service: PricingService) -> None:
        super().__init__("CalculatePricing", "Calculate order pricing")
        self.pricing_service = pricing_service

    async def execute(self, ctx: ActivityContext, payload: Any) -> CheckoutState:
        state = expect_payload(payload, CheckoutState)

        pricing = await self.pricing_service.calculate_order_pricing(
            state.cart_items, state.customer_id, state.shipping_address
        )

        state.subtotal = pricing.subtotal
        state.tax_amount = pricing.tax_amount
        state.shipping_cost = pricing.shipping_cost
        state.total = pricing.total
        state.pricing_calculated = True
        return state


class CreateOrderActivity(BaseActivity):
    """Create the order; cancelling it is the compensation."""

    def __init__(self, order_service: OrderService) -> None:
        super().__init__("CreateOrder", "Create order")
        self.order_service = order_service

    async def execute(self, ctx: ActivityContext, payload: Any) -> CheckoutState:
        state = expect_payload(payload, CheckoutState)
        if state.order_created and state.order_id is not None:
            return state

        state.order_id = await self.order_service.create_order(
            state.customer_id,
            state.cart_items,
            state.shipping_address,
            state.billing_address,
            state.total,
        )
        state.order_created = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, CheckoutState)
        if not state.order_created or state.order_id is None:
            return

        await self.order_service.cancel_order(state.order_id)
        state.order_created = False


def checkout_workflow(
    cart_service: CartService,
    inventory_service: InventoryService,
    pricing_service: PricingService,
    order_service: OrderService,
    options: Optional[WorkflowOptions] = None,
) -> WorkflowDefinition:
    """Build the checkout workflow definition.

    ``options`` replaces the default retry and timeout policy (two retries);
    compensation stays enabled.
    """
    options = options or WorkflowOptions(max_retries=2)
    return (
        WorkflowBuilder(CHECKOUT_WORKFLOW_ID, "Checkout Workflow", options)
        .description("Complete order checkout process with validation and compensation")
        .add_activities(
            ValidateCartActivity(cart_service),
            ReserveInventoryActivity(inventory_service),
            CalculatePricingActivity(pricing_service),
            CreateOrderActivity(order_service),
        )
        .compensate_on_failure(True)
        .payload(CheckoutState)
        .build()
    )
