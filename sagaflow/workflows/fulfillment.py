"""Fulfillment saga: allocate stock, create the shipment and its label."""

from __future__ import annotations

import contextlib
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple

import structlog
from pydantic import BaseModel, Field

from ..activity import BaseActivity
from ..contracts import ActivityContext
from ..definition import WorkflowBuilder, WorkflowDefinition, WorkflowOptions
from ..errors import StepError
from ._payload import expect_payload, release_each
from .models import Address

logger = structlog.get_logger(__name__)

FULFILLMENT_WORKFLOW_ID = "fulfillment"


class FulfillmentItem(BaseModel):
    sku_id: int
    quantity: int = Field(gt=0)


class FulfillmentState(BaseModel):
    """Payload carried through the fulfillment workflow."""

    order_id: int
    customer_id: int
    items: List[FulfillmentItem] = Field(default_factory=list)
    shipping_address: Address = Field(default_factory=Address)

    shipment_id: Optional[int] = None
    tracking_number: Optional[str] = None
    shipping_label_url: Optional[str] = None
    allocated_skus: List[int] = Field(default_factory=list)
    inventory_allocated: bool = False
    shipment_created: bool = False
    label_generated: bool = False

    estimated_delivery: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def sku_ids(self) -> List[int]:
        """Distinct SKUs in item order."""
        return list(dict.fromkeys(item.sku_id for item in self.items))

    def quantity_for(self, sku_id: int) -> int:
        return sum(item.quantity for item in self.items if item.sku_id == sku_id)


class InventoryAllocator(Protocol):
    async def allocate_inventory(self, sku_id: int, quantity: int) -> None: ...

    async def release_inventory(self, sku_id: int, quantity: int) -> None: ...


class ShipmentService(Protocol):
    async def create_shipment(
        self, order_id: int, items: List[FulfillmentItem], address: Address
    ) -> int: ...

    async def cancel_shipment(self, shipment_id: int) -> None: ...

    async def generate_shipping_label(self, shipment_id: int) -> Tuple[str, str]:
        """Return ``(label_url, tracking_number)``."""
        ...


class AllocateInventoryActivity(BaseActivity):
    """Allocate stock per SKU.

    If an allocation fails, the SKUs allocated so far are released before
    the failure propagates. SKUs that could not be released stay tracked on
    the payload, so a retry skips them.
    """

    def __init__(self, inventory: InventoryAllocator) -> None:
        super().__init__("AllocateInventory", "Allocate inventory for shipment")
        self.inventory = inventory

    async def execute(self, ctx: ActivityContext, payload: Any) -> FulfillmentState:
        state = expect_payload(payload, FulfillmentState)

        for sku_id in state.sku_ids():
            if sku_id in state.allocated_skus:
                continue
            try:
                await self.inventory.allocate_inventory(sku_id, state.quantity_for(sku_id))
            except Exception:
                # release failures are logged by _release; report the allocation failure
                with contextlib.suppress(Exception):
                    await self._release(state)
                raise
            state.allocated_skus.append(sku_id)

        state.inventory_allocated = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, FulfillmentState)
        if not state.allocated_skus:
            return
        await self._release(state)
        state.inventory_allocated = False

    async def _release(self, state: FulfillmentState) -> None:
        async def release(sku_id: int) -> None:
            await self.inventory.release_inventory(sku_id, state.quantity_for(sku_id))

        try:
            await release_each(state.allocated_skus, release)
        except Exception as exc:
            logger.warning(
                "Failed to release inventory",
                order_id=state.order_id,
                error=str(exc),
                still_allocated=list(state.allocated_skus),
            )
            raise


class CreateShipmentActivity(BaseActivity):
    def __init__(self, shipments: ShipmentService) -> None:
        super().__init__("CreateShipment", "Create shipment record")
        self.shipments = shipments

    async def execute(self, ctx: ActivityContext, payload: Any) -> FulfillmentState:
        state = expect_payload(payload, FulfillmentState)
        if state.shipment_created and state.shipment_id is not None:
            return state

        state.shipment_id = await self.shipments.create_shipment(
            state.order_id, state.items, state.shipping_address
        )
        state.shipment_created = True
        return state

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        state = expect_payload(payload, FulfillmentState)
        if not state.shipment_created or state.shipment_id is None:
            return

        await self.shipments.cancel_shipment(state.shipment_id)
        state.shipment_created = False


class GenerateShippingLabelActivity(BaseActivity):
    """Generate the carrier label.

    Labels are not reversible; cancelling the shipment cleans up.
    """

    def __init__(self, shipments: ShipmentService) -> None:
        super().__init__("GenerateShippingLabel", "Generate shipping label")
        self.shipments = shipments

    async def execute(self, ctx: ActivityContext, payload: Any) -> FulfillmentState:
        state = expect_payload(payload, FulfillmentState)
        if state.shipment_id is None:
            raise StepError("shipment not created", retryable=False)

        label_url, tracking_number = await self.shipments.generate_shipping_label(
            state.shipment_id
        )
        state.shipping_label_url = label_url
        state.tracking_number = tracking_number
        state.label_generated = True
        return state


def fulfillment_workflow(
    inventory: InventoryAllocator,
    shipments: ShipmentService,
    options: Optional[WorkflowOptions] = None,
) -> WorkflowDefinition:
    """Build the fulfillment workflow definition; ``options`` as for checkout."""
    options = options or WorkflowOptions(max_retries=2)
    return (
        WorkflowBuilder(FULFILLMENT_WORKFLOW_ID, "Fulfillment Workflow", options)
        .description("Process order fulfillment with inventory and shipping")
        .add_activities(
            AllocateInventoryActivity(inventory),
            CreateShipmentActivity(shipments),
            GenerateShippingLabelActivity(shipments),
        )
        .compensate_on_failure(True)
        .payload(FulfillmentState)
        .build()
    )
