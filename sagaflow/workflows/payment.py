"""Payment saga: validate, authorize and capture a payment."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, Field

from ..activity import BaseActivity
from ..contracts import ActivityContext
from ..definition import WorkflowBuilder, WorkflowDefinition, WorkflowOptions
from ..errors import StepError
from ._payload import expect_payload

PAYMENT_WORKFLOW_ID = "payment"


class PaymentState(BaseModel):
    """Payload carried through the payment workflow."""

    order_id: int
    customer_id: int
    amount: Decimal
    payment_method_id: int
    currency_code: str = "USD"

    authorization_id: Optional[str] = None
    capture_id: Optional[str] = None
    authorized: bool = False
    captured: bool = False
    voided: bool = False
    refunded: bool = False

    metadata: Dict[str, Any] = Field(default_factory=dict)


class PaymentGateway(Protocol):
    async def validate_payment_method(
        self, payment_method_id: int, customer_id: int
    ) -> None: ...

    async def authorize_payment(self, payment_method_id: int, amount: Decimal) -> str: ...

    async def capture_payment(self, authorization_id: str, amount: Decimal) -> str: ...

    async def void_authorization(self, authorization_id: str) -> None: ...

    async def refund_payment(self, capture_id: str, amount: Decimal) -> None: ...


class ValidatePaymentActivity(BaseActivity):
    def __init__(self, gateway: PaymentGateway) -> None:
        super().__init__("ValidatePayment", "Validate payment method")
        self.gateway = gateway

    async def execute(self, ctx: ActivityContext, payload: Any) -> PaymentState:
        state = expect_payload(payload, PaymentState)
        if state.amount <= 0:
            raise StepError(f"invalid payment amount {state.amount}", retryable=False)

        await self.gateway.validate_payment_method(state.payment_method_id, state.customer_id)
        return state


class AuthorizePaymentActivity(BaseActivity):
    """Authorize the amount; voiding the authorization is the compensation."""

    def __init__(self, gateway: PaymentGateway) -> None:
        super().__init__("AuthorizePayment", "Authorize payment")
        self.gateway = gateway

    async def execute(self, ctx: ActivityContext, payload: Any) -> PaymentState:
        state = expect_payload(payload, PaymentState)
        if state.authorized and state.authorization_id is not None:
            return state

        state.authorization_id = await self.gateway.authorize_payment(
            state.payment_method_id, state.amount
        )
        state.authorized = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, PaymentState)
        if not state.authorized or state.authorization_id is None or state.voided:
            return

        await self.gateway.void_authorization(state.authorization_id)
        state.voided = True


class CapturePaymentActivity(BaseActivity):
    """Capture the authorized amount; refunding it is the compensation."""

    def __init__(self, gateway: PaymentGateway) -> None:
        super().__init__("CapturePayment", "Capture payment")
        self.gateway = gateway

    async def execute(self, ctx: ActivityContext, payload: Any) -> PaymentState:
        state = expect_payload(payload, PaymentState)
        if not state.authorized or state.authorization_id is None:
            raise StepError("payment not authorized", retryable=False)
        if state.captured and state.capture_id is not None:
            return state

        state.capture_id = await self.gateway.capture_payment(
            state.authorization_id, state.amount
        )
        state.captured = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, PaymentState)
        if not state.captured or state.capture_id is None or state.refunded:
            return

        await self.gateway.refund_payment(state.capture_id, state.amount)
        state.refunded = True


def payment_workflow(
    gateway: PaymentGateway, options: Optional[WorkflowOptions] = None
) -> WorkflowDefinition:
    """Build the payment workflow definition; ``options`` as for checkout."""
    options = options or WorkflowOptions(max_retries=2)
    return (
        WorkflowBuilder(PAYMENT_WORKFLOW_ID, "Payment Workflow", options)
        .description("Process payment with authorization and capture")
        .add_activities(
            ValidatePaymentActivity(gateway),
            AuthorizePaymentActivity(gateway),
            CapturePaymentActivity(gateway),
        )
        .compensate_on_failure(True)
        .payload(PaymentState)
        .build()
    )
