"""Pricing workflow: discounts, tax and shipping arithmetic."""

from decimal import Decimal

import pytest

from sagaflow import Engine, Status, StepError
from sagaflow.workflows import PRICING_WORKFLOW_ID, PricingState, pricing_workflow
from sagaflow.workflows.pricing import Discount, discount_amount, to_cents


class FakePricing:
    def __init__(self, price="20.00", promotions=(), tax_rate="10", shipping="5.00"):
        self.price = Decimal(price)
        self.promotions = list(promotions)
        self.tax_rate = Decimal(tax_rate)
        self.shipping = Decimal(shipping)
        self.shipping_error = None

    async def get_product_price(self, product_id):
        return self.price

    async def get_applicable_promotions(self, product_id, customer_id, quantity):
        return self.promotions

    async def get_tax_rate(self, product_id, customer_id):
        return self.tax_rate

    async def calculate_shipping_cost(self, product_id, quantity, customer_id):
        if self.shipping_error is not None:
            raise self.shipping_error
        return self.shipping


def _engine(service):
    engine = Engine()
    engine.register_workflow(pricing_workflow(service, service, service, service))
    return engine


@pytest.mark.asyncio
async def test_pricing_without_promotions():
    engine = _engine(FakePricing())

    execution = await engine.execute(PRICING_WORKFLOW_ID, PricingState(product_id=1, quantity=3))

    state = execution.output
    assert execution.status == Status.COMPLETED
    assert state.subtotal == Decimal("60.00")
    assert state.total_discount == 0
    assert state.tax_amount == Decimal("6.00")
    assert state.shipping_cost == Decimal("5.00")
    assert state.final_price == Decimal("71.00")


@pytest.mark.asyncio
async def test_pricing_applies_known_discount_types():
    promotions = [
        Discount(id=1, name="10% off", type="percentage", value=Decimal("10")),
        Discount(id=2, name="1 off each", type="fixed", value=Decimal("1.00")),
        Discount(id=3, name="Mystery", type="lottery", value=Decimal("99")),
    ]
    engine = _engine(FakePricing(promotions=promotions))

    execution = await engine.execute(PRICING_WORKFLOW_ID, PricingState(product_id=1, quantity=3))

    state = execution.output
    assert [d.name for d in state.discounts] == ["10% off", "1 off each"]
    assert [d.amount for d in state.discounts] == [Decimal("6.00"), Decimal("3.00")]
    assert state.total_discount == Decimal("9.00")
    assert state.discounted_subtotal == Decimal("51.00")
    assert state.tax_amount == Decimal("5.10")
    assert state.final_price == Decimal("61.10")


def test_bogo_and_rounding():
    state = PricingState(product_id=1, quantity=5, base_price=Decimal("3.00"), subtotal=Decimal("15.00"))

    bogo = Discount(id=1, name="BOGO", type="bogo")
    assert discount_amount(bogo, state) == Decimal("6.00")
    assert to_cents(Decimal("1.005")) == Decimal("1.01")


def test_discounts_never_make_subtotal_negative():
    state = PricingState(product_id=1, quantity=1, subtotal=Decimal("5"), total_discount=Decimal("8"))

    assert state.discounted_subtotal == Decimal("0")


@pytest.mark.asyncio
async def test_pricing_failure_is_not_compensated():
    service = FakePricing()
    service.shipping_error = StepError("no carrier for region", retryable=False)
    engine = _engine(service)

    with pytest.raises(StepError) as exc_info:
        await engine.execute(PRICING_WORKFLOW_ID, PricingState(product_id=1, quantity=1))

    assert exc_info.value.activity == "CalculateShipping"
    assert exc_info.value.execution.status == Status.FAILED
