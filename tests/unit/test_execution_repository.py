import pytest

from sagaflow import ExecutionContext, Status
from sagaflow.persistence import InMemoryExecutionRepository


@pytest.mark.asyncio
async def test_in_memory_repository_crud():
    repo = InMemoryExecutionRepository()
    first = ExecutionContext(workflow_id="checkout", status=Status.COMPLETED)
    second = ExecutionContext(workflow_id="payment", status=Status.COMPENSATED)

    await repo.save_execution(first)
    await repo.save_execution(second)

    assert await repo.get_execution(first.execution_id) == first
    assert await repo.get_execution("exec-missing") is None
    assert await repo.list_executions() == [first, second]
    assert await repo.list_executions("payment") == [second]
    assert len(repo) == 2


@pytest.mark.asyncio
async def test_in_memory_repository_overwrites_same_execution():
    repo = InMemoryExecutionRepository()
    execution = ExecutionContext(workflow_id="checkout", status=Status.RUNNING)

    await repo.save_execution(execution)
    await repo.save_execution(execution.model_copy(update={"status": Status.COMPLETED}))

    (stored,) = await repo.list_executions()
    assert stored.status == Status.COMPLETED


@pytest.mark.asyncio
async def test_in_memory_repository_evicts_oldest():
    repo = InMemoryExecutionRepository(max_entries=2)
    executions = [ExecutionContext(workflow_id="wf") for _ in range(3)]

    for execution in executions:
        await repo.save_execution(execution)

    assert await repo.list_executions() == executions[1:]
    assert await repo.get_execution(executions[0].execution_id) is None


def test_in_memory_repository_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        InMemoryExecutionRepository(max_entries=0)
