"""Commerce workflows assembled from sagaflow activities."""

from .checkout import CHECKOUT_WORKFLOW_ID, CheckoutState, checkout_workflow
from .fulfillment import FULFILLMENT_WORKFLOW_ID, FulfillmentState, fulfillment_workflow
from .models import Address
from .payment import PAYMENT_WORKFLOW_ID, PaymentState, payment_workflow
from .pricing import PRICING_WORKFLOW_ID, PricingState, pricing_workflow

__all__ = [
    "Address",
    "CHECKOUT_WORKFLOW_ID",
    "CheckoutState",
    "checkout_workflow",
    "FULFILLMENT_WORKFLOW_ID",
    "FulfillmentState",
    "fulfillment_workflow",
    "PAYMENT_WORKFLOW_ID",
    "PaymentState",
    "payment_workflow",
    "PRICING_WORKFLOW_ID",
    "PricingState",
    "pricing_workflow",
]
