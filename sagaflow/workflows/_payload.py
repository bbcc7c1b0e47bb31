from __future__ import annotations

from typing import Any, Awaitable, Callable, Type, TypeVar

from pydantic import BaseModel

from ..errors import StepError

StateT = TypeVar("StateT", bound=BaseModel)


def expect_payload(payload: Any, state_type: Type[StateT]) -> StateT:
    """Return ``payload`` if it belongs to the workflow family, else fail the step."""
    if not isinstance(payload, state_type):
        raise StepError(
            f"invalid input type {type(payload).__name__}, expected {state_type.__name__}",
            retryable=False,
        )
    return payload


async def release_each(
    sku_ids: list[int], release: Callable[[int], Awaitable[None]]
) -> None:
    """Release every SKU in ``sku_ids``, removing it from the list once done.

    Every SKU is attempted; the first failure is re-raised afterwards, leaving
    the SKUs still held in ``sku_ids``.
    """
    first_error: BaseException | None = None
    for sku_id in list(sku_ids):
        try:
            await release(sku_id)
        except Exception as exc:
            first_error = first_error or exc
            continue
        sku_ids.remove(sku_id)
    if first_error is not None:
        raise first_error
