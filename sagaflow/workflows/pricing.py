"""Pricing workflow: base price, promotions, tax and shipping.

Every step is read-only, so the workflow runs without compensation. Each
step derives its results from earlier fields instead of accumulating onto
``final_price``, which keeps retries from double-counting.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from ..activity import BaseActivity
from ..contracts import ActivityContext
from ..definition import WorkflowBuilder, WorkflowDefinition, WorkflowOptions
from ._payload import expect_payload

PRICING_WORKFLOW_ID = "pricing"

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class Discount(BaseModel):
    id: int
    name: str
    type: str = Field(description="percentage, fixed or bogo")
    value: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    description: str = ""


class PricingState(BaseModel):
    """Payload carried through the pricing workflow."""

    product_id: int
    quantity: int = Field(gt=0)
    customer_id: Optional[int] = None
    currency_code: str = "USD"

    base_price: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    discounts: List[Discount] = Field(default_factory=list)
    total_discount: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    final_price: Decimal = Decimal("0")

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def discounted_subtotal(self) -> Decimal:
        return max(self.subtotal - self.total_discount, Decimal("0"))


class PriceService(Protocol):
    async def get_product_price(self, product_id: int) -> Decimal: ...


class PromotionService(Protocol):
    async def get_applicable_promotions(
        self, product_id: int, customer_id: Optional[int], quantity: int
    ) -> List[Discount]: ...


class TaxService(Protocol):
    async def get_tax_rate(self, product_id: int, customer_id: Optional[int]) -> Decimal:
        """Return the tax rate as a percentage."""
        ...


class ShippingRateService(Protocol):
    async def calculate_shipping_cost(
        self, product_id: int, quantity: int, customer_id: Optional[int]
    ) -> Decimal: ...


def discount_amount(discount: Discount, state: PricingState) -> Optional[Decimal]:
    """Amount ``discount`` takes off ``state``; ``None`` for unknown types."""
    if discount.type == "percentage":
        return to_cents(state.subtotal * discount.value / HUNDRED)
    if discount.type == "fixed":
        return discount.value * state.quantity
    if discount.type == "bogo":
        # every second unit is free
        return state.base_price * (state.quantity // 2)
    return None


class GetBasePriceActivity(BaseActivity):
    def __init__(self, prices: PriceService) -> None:
        super().__init__("GetBasePrice", "Retrieve product base price")
        self.prices = prices

    async def execute(self, ctx: ActivityContext, payload: Any) -> PricingState:
        state = expect_payload(payload, PricingState)

        state.base_price = await self.prices.get_product_price(state.product_id)
        state.subtotal = state.base_price * state.quantity
        state.final_price = state.subtotal
        return state


class ApplyPromotionsActivity(BaseActivity):
    def __init__(self, promotions: PromotionService) -> None:
        super().__init__("ApplyPromotions", "Apply promotions and discounts")
        self.promotions = promotions

    async def execute(self, ctx: ActivityContext, payload: Any) -> PricingState:
        state = expect_payload(payload, PricingState)

        candidates = await self.promotions.get_applicable_promotions(
            state.product_id, state.customer_id, state.quantity
        )
        applied: List[Discount] = []
        for discount in candidates:
            amount = discount_amount(discount, state)
            if amount is None:
                continue
            applied.append(discount.model_copy(update={"amount": amount}))

        state.discounts = applied
        state.total_discount = sum((d.amount for d in applied), Decimal("0"))
        state.final_price = state.discounted_subtotal
        return state


class CalculateTaxActivity(BaseActivity):
    def __init__(self, taxes: TaxService) -> None:
        super().__init__("CalculateTax", "Calculate tax amount")
        self.taxes = taxes

    async def execute(self, ctx: ActivityContext, payload: Any) -> PricingState:
        state = expect_payload(payload, PricingState)

        state.tax_rate = await self.taxes.get_tax_rate(state.product_id, state.customer_id)
        state.tax_amount = to_cents(state.discounted_subtotal * state.tax_rate / HUNDRED)
        state.final_price = state.discounted_subtotal + state.tax_amount
        return state


class CalculateShippingActivity(BaseActivity):
    def __init__(self, shipping: ShippingRateService) -> None:
        super().__init__("CalculateShipping", "Calculate shipping cost")
        self.shipping = shipping

    async def execute(self, ctx: ActivityContext, payload: Any) -> PricingState:
        state = expect_payload(payload, PricingState)

        state.shipping_cost = await self.shipping.calculate_shipping_cost(
            state.product_id, state.quantity, state.customer_id
        )
        state.final_price = state.discounted_subtotal + state.tax_amount + state.shipping_cost
        return state


def pricing_workflow(
    prices: PriceService,
    promotions: PromotionService,
    taxes: TaxService,
    shipping: ShippingRateService,
    options: Optional[WorkflowOptions] = None,
) -> WorkflowDefinition:
    """Build the pricing workflow definition.

    Every step is read-only, so compensation is disabled whatever
    ``options`` says.
    """
    options = options or WorkflowOptions(max_retries=2)
    return (
        WorkflowBuilder(PRICING_WORKFLOW_ID, "Pricing Workflow", options)
        .description("Calculate final price with promotions, tax, and shipping")
        .add_activities(
            GetBasePriceActivity(prices),
            ApplyPromotionsActivity(promotions),
            CalculateTaxActivity(taxes),
            CalculateShippingActivity(shipping),
        )
        .compensate_on_failure(False)
        .payload(PricingState)
        .build()
    )
