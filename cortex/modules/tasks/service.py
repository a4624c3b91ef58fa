"""Task service for CRUD operations, scheduling gestures and blocking re-evaluation."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from cortex.core import db_client
from cortex.core.db_client import sanitize_param
from cortex.core.errors import RecordNotFoundError
from cortex.core.live_query import Subscription, snapshot_hub
from cortex.core.logging import span
from cortex.domain.conditional import Conditional
from cortex.domain.create_models import TaskCreate, check_scope_key
from cortex.domain.task import Task, TaskScope, TaskStatus
from cortex.domain.update_models import TaskUpdate
from cortex.models.service_models import BlockingState
from cortex.modules.conditionals import resolver
from cortex.modules.tasks import rollup, state_machine, time_grid


logger = logging.getLogger(__name__)

COLLECTION = "tasks"


async def _notify(owner_id: str) -> None:
    await snapshot_hub.notify(owner_id=owner_id, collection=COLLECTION)


async def _get_owned_record(*, owner_id: str, task_id: str) -> dict[str, Any]:
    record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
    if str(record.get("owner_id")) != str(owner_id):
        msg = f"Record not found in {COLLECTION}: {task_id}"
        raise RecordNotFoundError(msg)
    return record


async def get_task(*, owner_id: str, task_id: str) -> Task:
    """Fetch one task owned by ``owner_id``.

    Raises:
        RecordNotFoundError: If the task does not exist or belongs to someone else
    """
    with span("task_service.get_task"):
        record = await _get_owned_record(owner_id=owner_id, task_id=task_id)
        return Task.model_validate(record)


async def list_tasks(
    *,
    owner_id: str,
    scope: str | None = None,
    scope_key: str | None = None,
    parent_task_id: str | None = None,
    status: str | None = None,
) -> list[Task]:
    """List an owner's tasks, optionally narrowed by scope, bucket, parent or status."""
    with span("task_service.list_tasks"):
        filters = [f'owner_id = "{sanitize_param(owner_id)}"']
        if scope:
            filters.append(f'scope = "{sanitize_param(scope)}"')
        if scope_key:
            filters.append(f'scope_key = "{sanitize_param(scope_key)}"')
        if parent_task_id:
            filters.append(f'parent_task_id = "{sanitize_param(parent_task_id)}"')
        if status:
            filters.append(f'status = "{sanitize_param(status)}"')

        records = await db_client.list_all_records(collection=COLLECTION, filter_query=" && ".join(filters))
        return [Task.model_validate(record) for record in records]


async def _list_conditionals(*, owner_id: str) -> list[Conditional]:
    records = await db_client.list_all_records(
        collection="conditionals",
        filter_query=f'owner_id = "{sanitize_param(owner_id)}"',
    )
    return [Conditional.model_validate(record) for record in records]


async def reevaluate_blocking(*, owner_id: str, notify: bool = True) -> dict[str, BlockingState]:
    """Run the resolver over the owner's snapshot and persist status changes.

    Returns:
        Blocking verdict for every task of the owner
    """
    with span("task_service.reevaluate_blocking"):
        tasks = await list_tasks(owner_id=owner_id)
        conditionals = await _list_conditionals(owner_id=owner_id)

        states = resolver.resolve_blocking(tasks, conditionals)
        updates = resolver.blocking_updates(tasks, conditionals)
        for task_id, update in updates.items():
            await db_client.update_record(collection=COLLECTION, record_id=task_id, data=update)

        if updates:
            logger.info(
                "Blocking re-evaluated",
                extra={"owner_id": owner_id, "changed": len(updates), "tasks": len(tasks)},
            )
            if notify:
                await _notify(owner_id)
        return states


async def create_task(*, owner_id: str, data: TaskCreate) -> Task:
    """Create a task and apply the blocking overlay to it.

    Raises:
        InvalidTimeRangeError: If the time slot is half-set, malformed or inverted
        db_client.DatabaseError: If database operation fails
    """
    with span("task_service.create_task"):
        time_grid.validate_time_range(data.start_time, data.end_time)

        payload: dict[str, Any] = data.model_dump(mode="json")
        payload["owner_id"] = owner_id
        payload["status"] = TaskStatus.PENDING
        payload["progress"] = 0

        record = await db_client.create_record(collection=COLLECTION, data=payload)
        logger.info("Created task: %s (%s %s)", data.title, data.scope, data.scope_key)

        await reevaluate_blocking(owner_id=owner_id, notify=False)
        await _notify(owner_id)
        return await get_task(owner_id=owner_id, task_id=record["id"])


async def update_task(*, owner_id: str, task_id: str, update: TaskUpdate) -> Task:
    """Write a partial update. Only fields set on ``update`` are written.

    Raises:
        InvalidTimeRangeError: If the resulting time slot is invalid
        ValueError: If the resulting scope key does not match the scope
        RecordNotFoundError: If the task does not exist
    """
    with span("task_service.update_task"):
        current = await get_task(owner_id=owner_id, task_id=task_id)
        fields = update.model_dump(mode="json", exclude_unset=True)
        if not fields:
            return current

        if "start_time" in fields or "end_time" in fields:
            time_grid.validate_time_range(
                fields.get("start_time", current.start_time),
                fields.get("end_time", current.end_time),
            )
        if "scope" in fields or "scope_key" in fields:
            check_scope_key(TaskScope(fields.get("scope", current.scope)), fields.get("scope_key", current.scope_key))

        await db_client.update_record(collection=COLLECTION, record_id=task_id, data=fields)
        logger.info("Updated task %s fields: %s", task_id, sorted(fields))

        await reevaluate_blocking(owner_id=owner_id, notify=False)
        await _notify(owner_id)
        return await get_task(owner_id=owner_id, task_id=task_id)


async def delete_task(*, owner_id: str, task_id: str) -> None:
    """Delete a task. References to it from other tasks become dangling and stop blocking."""
    with span("task_service.delete_task"):
        await _get_owned_record(owner_id=owner_id, task_id=task_id)
        await db_client.delete_record(collection=COLLECTION, record_id=task_id)
        logger.info("Deleted task %s", task_id)

        await reevaluate_blocking(owner_id=owner_id, notify=False)
        await _notify(owner_id)


async def _write_status(*, owner_id: str, task: Task, update: dict[str, Any]) -> Task:
    if not update:
        return task
    await db_client.update_record(collection=COLLECTION, record_id=task.id, data=update)
    logger.info("Task %s status %s -> %s", task.id, task.status, update["status"])

    # Milestones gate their dependents
    await reevaluate_blocking(owner_id=owner_id, notify=False)
    await _notify(owner_id)
    return await get_task(owner_id=owner_id, task_id=task.id)


async def set_status(
    *,
    owner_id: str,
    task_id: str,
    status: TaskStatus,
    now: datetime | None = None,
) -> Task:
    """Apply a user-requested status change.

    Raises:
        InvalidStateTransitionError: If the change is not a user transition
    """
    with span("task_service.set_status"):
        task = await get_task(owner_id=owner_id, task_id=task_id)
        update = state_machine.transition(task, status, now=now or datetime.now(UTC))
        return await _write_status(owner_id=owner_id, task=task, update=update)


async def toggle_completion(*, owner_id: str, task_id: str, now: datetime | None = None) -> Task:
    """Flip a task between done and pending."""
    with span("task_service.toggle_completion"):
        task = await get_task(owner_id=owner_id, task_id=task_id)
        update = state_machine.toggle_completion(task, now=now or datetime.now(UTC))
        return await _write_status(owner_id=owner_id, task=task, update=update)


async def move_task(
    *,
    owner_id: str,
    task_id: str,
    pointer_offset: float,
    scope_key: str | None = None,
) -> Task:
    """Reschedule a task dropped at ``pointer_offset`` with a single write.

    The duration is preserved; unscheduled tasks get the default slot.
    """
    with span("task_service.move_task"):
        task = await get_task(owner_id=owner_id, task_id=task_id)
        if task.start_time is None or task.end_time is None:
            slot = time_grid.slot_for_double_click(pointer_offset)
        else:
            slot = time_grid.drag_move(pointer_offset, task.start_time, task.end_time)

        update: dict[str, Any] = {"start_time": slot.start_time, "end_time": slot.end_time}
        if scope_key:
            check_scope_key(task.scope, scope_key)
            update["scope_key"] = scope_key

        await db_client.update_record(collection=COLLECTION, record_id=task_id, data=update)
        logger.info("Moved task %s to %s-%s", task_id, slot.start_time, slot.end_time)

        await _notify(owner_id)
        return task.model_copy(update=update)


async def create_task_at_offset(
    *,
    owner_id: str,
    pointer_offset: float,
    scope_key: str,
    title: str = "New Task",
) -> Task:
    """Create a default-length task where the empty canvas was double-clicked."""
    with span("task_service.create_task_at_offset"):
        slot = time_grid.slot_for_double_click(pointer_offset)
        data = TaskCreate(title=title, scope_key=scope_key, start_time=slot.start_time, end_time=slot.end_time)
        return await create_task(owner_id=owner_id, data=data)


async def get_children(*, owner_id: str, parent_task_id: str) -> list[Task]:
    """Tasks whose parent is ``parent_task_id``."""
    with span("task_service.get_children"):
        return await list_tasks(owner_id=owner_id, parent_task_id=parent_task_id)


async def get_rollup_progress(*, owner_id: str, task_id: str) -> int:
    """Rollup of a parent task, computed on read."""
    with span("task_service.get_rollup_progress"):
        parent = await get_task(owner_id=owner_id, task_id=task_id)
        children = await get_children(owner_id=owner_id, parent_task_id=task_id)
        rollup.unassigned_contribution(children)
        return rollup.rollup_progress(parent, children)


async def stream_tasks(
    *,
    owner_id: str,
    callback: Callable[[list[Task]], Any],
    scope: str | None = None,
    scope_key: str | None = None,
    parent_task_id: str | None = None,
    status: str | None = None,
) -> Subscription:
    """Subscribe to full task snapshots matching the filter."""

    async def fetch() -> list[Task]:
        return await list_tasks(
            owner_id=owner_id,
            scope=scope,
            scope_key=scope_key,
            parent_task_id=parent_task_id,
            status=status,
        )

    with span("task_service.stream_tasks"):
        return await snapshot_hub.subscribe(owner_id=owner_id, collection=COLLECTION, fetch=fetch, callback=callback)
