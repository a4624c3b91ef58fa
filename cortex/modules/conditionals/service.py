"""Conditional service: CRUD, resolution and task linking."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from cortex.core import db_client
from cortex.core.db_client import sanitize_param
from cortex.core.errors import RecordNotFoundError
from cortex.core.live_query import Subscription, snapshot_hub
from cortex.core.logging import log_with_owner_context, span
from cortex.domain.conditional import Conditional, ConditionalStatus
from cortex.domain.create_models import ConditionalCreate
from cortex.domain.task import Task
from cortex.modules.conditionals import resolver
from cortex.modules.tasks import service as task_service


logger = logging.getLogger(__name__)

COLLECTION = "conditionals"


async def _notify(owner_id: str) -> None:
    await snapshot_hub.notify(owner_id=owner_id, collection=COLLECTION)


async def get_conditional(*, owner_id: str, conditional_id: str) -> Conditional:
    """Fetch one conditional owned by ``owner_id``.

    Raises:
        RecordNotFoundError: If the conditional does not exist or belongs to someone else
    """
    with span("conditional_service.get_conditional"):
        record = await db_client.get_record(collection=COLLECTION, record_id=conditional_id)
        if str(record.get("owner_id")) != str(owner_id):
            msg = f"Record not found in {COLLECTION}: {conditional_id}"
            raise RecordNotFoundError(msg)
        return Conditional.model_validate(record)


async def list_conditionals(*, owner_id: str, status: ConditionalStatus | None = None) -> list[Conditional]:
    """List an owner's conditionals, optionally by status."""
    with span("conditional_service.list_conditionals"):
        filter_query = f'owner_id = "{sanitize_param(owner_id)}"'
        if status:
            filter_query += f' && status = "{sanitize_param(status)}"'
        records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query)
        return [Conditional.model_validate(record) for record in records]


async def create_conditional(*, owner_id: str, data: ConditionalCreate) -> Conditional:
    """Create a pending conditional.

    Raises:
        RecordNotFoundError: If the fallback conditional does not exist
    """
    with span("conditional_service.create_conditional"):
        if data.fallback_conditional_id:
            await get_conditional(owner_id=owner_id, conditional_id=data.fallback_conditional_id)

        payload: dict[str, Any] = data.model_dump(mode="json")
        payload["owner_id"] = owner_id
        payload["status"] = ConditionalStatus.PENDING

        record = await db_client.create_record(collection=COLLECTION, data=payload)
        logger.info("Created conditional: %s (expected %s)", data.title, data.expected_date)

        await _notify(owner_id)
        return Conditional.model_validate(record)


async def resolve_conditional(
    *,
    owner_id: str,
    conditional_id: str,
    outcome_id: str,
    now: datetime | None = None,
) -> Conditional:
    """Resolve a conditional with one of its outcomes and apply the effect to its tasks.

    The conditional is written first, then each affected task, one write each.

    Raises:
        ConditionalAlreadyResolvedError: If the conditional already has an outcome
        OutcomeNotFoundError: If the outcome is not one of the conditional's outcomes
    """
    with span("conditional_service.resolve_conditional"):
        conditional = await get_conditional(owner_id=owner_id, conditional_id=conditional_id)
        tasks = await task_service.list_tasks(owner_id=owner_id)
        conditionals = await list_conditionals(owner_id=owner_id)

        plan = resolver.plan_resolution(
            conditional,
            outcome_id,
            tasks=tasks,
            conditionals=conditionals,
            now=now or datetime.now(UTC),
        )

        record = await db_client.update_record(
            collection=COLLECTION, record_id=conditional_id, data=plan.conditional_update
        )
        for task_id, update in plan.task_updates.items():
            await db_client.update_record(collection=task_service.COLLECTION, record_id=task_id, data=update)

        log_with_owner_context(
            logger,
            "info",
            "Conditional resolved",
            owner_id=owner_id,
            conditional_id=conditional_id,
            outcome_id=outcome_id,
            tasks_updated=len(plan.task_updates),
            switched_to_fallback=plan.switched_to_fallback,
        )

        await _notify(owner_id)
        if plan.task_updates:
            await snapshot_hub.notify(owner_id=owner_id, collection=task_service.COLLECTION)
        return Conditional.model_validate(record)


async def delete_conditional(*, owner_id: str, conditional_id: str) -> None:
    """Delete a conditional and release the tasks it was gating."""
    with span("conditional_service.delete_conditional"):
        await get_conditional(owner_id=owner_id, conditional_id=conditional_id)

        tasks = await task_service.list_tasks(owner_id=owner_id)
        for task in tasks:
            if task.blocked_by_conditional_id == conditional_id:
                await db_client.update_record(
                    collection=task_service.COLLECTION,
                    record_id=task.id,
                    data={"blocked_by_conditional_id": None},
                )

        await db_client.delete_record(collection=COLLECTION, record_id=conditional_id)
        logger.info("Deleted conditional %s", conditional_id)

        await task_service.reevaluate_blocking(owner_id=owner_id, notify=False)
        await _notify(owner_id)
        await snapshot_hub.notify(owner_id=owner_id, collection=task_service.COLLECTION)


async def link_task_to_conditional(*, owner_id: str, task_id: str, conditional_id: str) -> Task:
    """Gate a task behind a conditional."""
    with span("conditional_service.link_task_to_conditional"):
        await get_conditional(owner_id=owner_id, conditional_id=conditional_id)
        await task_service.get_task(owner_id=owner_id, task_id=task_id)

        await db_client.update_record(
            collection=task_service.COLLECTION,
            record_id=task_id,
            data={"blocked_by_conditional_id": conditional_id},
        )
        logger.info("Linked task %s to conditional %s", task_id, conditional_id)

        await task_service.reevaluate_blocking(owner_id=owner_id, notify=False)
        await snapshot_hub.notify(owner_id=owner_id, collection=task_service.COLLECTION)
        return await task_service.get_task(owner_id=owner_id, task_id=task_id)


async def unlink_task_from_conditional(*, owner_id: str, task_id: str) -> Task:
    """Remove a task's conditional gate."""
    with span("conditional_service.unlink_task_from_conditional"):
        task = await task_service.get_task(owner_id=owner_id, task_id=task_id)
        if task.blocked_by_conditional_id is None:
            return task

        await db_client.update_record(
            collection=task_service.COLLECTION,
            record_id=task_id,
            data={"blocked_by_conditional_id": None},
        )
        logger.info("Unlinked task %s from conditional %s", task_id, task.blocked_by_conditional_id)

        await task_service.reevaluate_blocking(owner_id=owner_id, notify=False)
        await snapshot_hub.notify(owner_id=owner_id, collection=task_service.COLLECTION)
        return await task_service.get_task(owner_id=owner_id, task_id=task_id)


async def stream_conditionals(
    *,
    owner_id: str,
    callback: Callable[[list[Conditional]], Any],
) -> Subscription:
    """Subscribe to full snapshots of the owner's conditionals."""

    async def fetch() -> list[Conditional]:
        return await list_conditionals(owner_id=owner_id)

    with span("conditional_service.stream_conditionals"):
        return await snapshot_hub.subscribe(owner_id=owner_id, collection=COLLECTION, fetch=fetch, callback=callback)
