"""Dependency and blocking resolver.

Decides for every task in a snapshot whether it is executable, and plans the
writes caused by resolving a conditional. Everything here is a pure
computation over in-memory snapshots; the conditional service persists the
results.

A task is blocked when either holds:

- an ancestor reached through ``parent_task_id`` or ``blocked_by_milestone_id``
  is a milestone that is not done
- ``blocked_by_conditional_id`` names a conditional that has not resolved to
  a ``success`` outcome

References to entities missing from the snapshot never block.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as dateutil_parser

from cortex.core.config import settings
from cortex.core.errors import ConditionalAlreadyResolvedError, OutcomeNotFoundError
from cortex.domain.conditional import (
    Conditional,
    ConditionalOutcome,
    ConditionalStatus,
    OutcomeAction,
    OutcomeType,
)
from cortex.domain.task import CALENDAR_SCOPES, Task, TaskStatus
from cortex.models.service_models import BlockingState, ResolutionPlan
from cortex.modules.achievements.periods import format_scope_key, scope_key_bounds
from cortex.modules.tasks import state_machine


logger = logging.getLogger(__name__)


def unfinished_milestones(task: Task, tasks_by_id: dict[str, Task]) -> list[str]:
    """IDs of milestone ancestors of ``task`` that are not done.

    Walks both ancestor links breadth-first. Cycles are cut by a visited set.
    """
    blockers: list[str] = []
    visited = {task.id}
    frontier = [task]

    while frontier:
        current = frontier.pop(0)
        for ref in (current.parent_task_id, current.blocked_by_milestone_id):
            if not ref or ref in visited:
                continue
            visited.add(ref)
            ancestor = tasks_by_id.get(ref)
            if ancestor is None:
                continue
            if ancestor.is_milestone and ancestor.status != TaskStatus.DONE:
                blockers.append(ancestor.id)
            frontier.append(ancestor)

    return blockers


def conditional_blocks(conditional: Conditional | None) -> bool:
    """Whether a referenced conditional still gates its tasks."""
    if conditional is None:
        return False
    if conditional.status == ConditionalStatus.PENDING:
        return True
    outcome = conditional.selected_outcome
    return outcome is None or outcome.type != OutcomeType.SUCCESS


def _blocking_state(
    task: Task,
    tasks_by_id: dict[str, Task],
    conditionals_by_id: dict[str, Conditional],
) -> BlockingState:
    milestone_ids = unfinished_milestones(task, tasks_by_id)

    conditional_id = None
    if task.blocked_by_conditional_id and conditional_blocks(
        conditionals_by_id.get(task.blocked_by_conditional_id)
    ):
        conditional_id = task.blocked_by_conditional_id

    blocked = bool(milestone_ids) or conditional_id is not None
    overlay = state_machine.apply_blocking(task, blocked=blocked)
    status = overlay["status"] if overlay else task.status

    return BlockingState(
        task_id=task.id,
        blocked=blocked and task.status != TaskStatus.DONE,
        milestone_ids=milestone_ids,
        conditional_id=conditional_id,
        status=str(status),
    )


def resolve_blocking(tasks: Iterable[Task], conditionals: Iterable[Conditional]) -> dict[str, BlockingState]:
    """Blocking verdict for every task in the snapshot."""
    tasks = list(tasks)
    tasks_by_id = {task.id: task for task in tasks}
    conditionals_by_id = {c.id: c for c in conditionals}
    return {task.id: _blocking_state(task, tasks_by_id, conditionals_by_id) for task in tasks}


def blocking_updates(tasks: Iterable[Task], conditionals: Iterable[Conditional]) -> dict[str, dict[str, Any]]:
    """Status writes needed to bring the snapshot in line with the resolver."""
    tasks = list(tasks)
    states = resolve_blocking(tasks, conditionals)
    updates: dict[str, dict[str, Any]] = {}
    for task in tasks:
        state = states[task.id]
        if state.status != task.status:
            updates[task.id] = {"status": TaskStatus(state.status)}
    return updates


def scheduled_date(task: Task) -> date | None:
    """Date a task is scheduled for: its calendar bucket start, else its deadline."""
    if task.scope in CALENDAR_SCOPES and task.scope_key:
        try:
            return scope_key_bounds(task.scope, task.scope_key)[0]
        except ValueError:
            logger.warning("Unparseable scope key", extra={"task_id": task.id, "scope_key": task.scope_key})
    if task.deadline:
        try:
            return dateutil_parser.isoparse(task.deadline).date()
        except ValueError:
            logger.warning("Unparseable deadline", extra={"task_id": task.id, "deadline": task.deadline})
    return None


def _shift_deadline(deadline: str, days: int) -> str:
    parsed = dateutil_parser.isoparse(deadline)
    shifted = parsed + timedelta(days=days)
    # Keep date-only deadlines date-only
    if len(deadline) == len("YYYY-MM-DD"):
        return shifted.date().isoformat()
    return shifted.isoformat()


def shift_task_dates(task: Task, days: int) -> dict[str, Any]:
    """Move a task's date-bearing fields forward by ``days``.

    ``start_time``/``end_time`` are clock values and stay put, so the
    scheduled start moves by exactly ``days`` days. The first postponement
    records ``original_scheduled_date``.
    """
    if days == 0:
        return {}

    update: dict[str, Any] = {}
    if task.scope in CALENDAR_SCOPES and task.scope_key:
        try:
            first_day, _ = scope_key_bounds(task.scope, task.scope_key)
        except ValueError:
            logger.warning("Unparseable scope key", extra={"task_id": task.id, "scope_key": task.scope_key})
        else:
            update["scope_key"] = format_scope_key(task.scope, first_day + timedelta(days=days))

    if task.deadline:
        try:
            update["deadline"] = _shift_deadline(task.deadline, days)
        except ValueError:
            logger.warning("Unparseable deadline left unshifted", extra={"task_id": task.id, "deadline": task.deadline})

    if update and task.original_scheduled_date is None:
        original = scheduled_date(task)
        update["original_scheduled_date"] = task.scope_key if "scope_key" in update else (
            original.isoformat() if original else None
        )

    return update


def _shift_for_fallback(task: Task, fallback: Conditional | None, days: int) -> dict[str, Any]:
    """Shift so the task lands no earlier than the fallback's expected date plus ``days``."""
    if fallback is None:
        return shift_task_dates(task, days)

    try:
        target = date.fromisoformat(fallback.expected_date) + timedelta(days=days)
    except ValueError:
        logger.warning(
            "Fallback has no usable expected date",
            extra={"conditional_id": fallback.id, "expected_date": fallback.expected_date},
        )
        return {}

    current = scheduled_date(task)
    if current is None or current >= target:
        return {}
    return shift_task_dates(task, (target - current).days)


def _plan_task_updates(
    outcome: ConditionalOutcome,
    conditional: Conditional,
    dependents: list[Task],
    conditionals_by_id: dict[str, Conditional],
) -> tuple[dict[str, dict[str, Any]], str | None]:
    updates: dict[str, dict[str, Any]] = {task.id: {} for task in dependents}
    switched_to: str | None = None

    if outcome.action == OutcomeAction.ACTIVATE:
        for task in dependents:
            updates[task.id]["blocked_by_conditional_id"] = None

    elif outcome.action == OutcomeAction.POSTPONE:
        days = outcome.postpone_days if outcome.postpone_days is not None else settings.default_postpone_days
        for task in dependents:
            updates[task.id].update(shift_task_dates(task, days))

    elif outcome.action == OutcomeAction.SWITCH_FALLBACK:
        fallback_days = conditional.fallback_postpone_days
        if conditional.fallback_conditional_id:
            switched_to = conditional.fallback_conditional_id
            fallback = conditionals_by_id.get(switched_to)
            for task in dependents:
                updates[task.id]["blocked_by_conditional_id"] = switched_to
                if fallback_days is not None:
                    updates[task.id].update(_shift_for_fallback(task, fallback, fallback_days))
        elif fallback_days is not None:
            # No fallback to wait on: shift and release
            for task in dependents:
                updates[task.id].update(shift_task_dates(task, fallback_days))
                updates[task.id]["blocked_by_conditional_id"] = None

    return updates, switched_to


def plan_resolution(
    conditional: Conditional,
    outcome_id: str,
    *,
    tasks: Iterable[Task],
    conditionals: Iterable[Conditional],
    now: datetime,
) -> ResolutionPlan:
    """Plan the writes for resolving ``conditional`` with ``outcome_id``.

    Raises:
        ConditionalAlreadyResolvedError: If the conditional already has an outcome
        OutcomeNotFoundError: If ``outcome_id`` is not one of its outcomes
    """
    if conditional.is_terminal:
        msg = f"Conditional {conditional.id} is already resolved"
        raise ConditionalAlreadyResolvedError(msg)

    outcome = conditional.get_outcome(outcome_id)
    if outcome is None:
        msg = f"Outcome {outcome_id} not found on conditional {conditional.id}"
        raise OutcomeNotFoundError(msg)

    status = ConditionalStatus.FAILED if outcome.type == OutcomeType.FAILED else ConditionalStatus.RESOLVED
    conditional_update: dict[str, Any] = {
        "status": status,
        "selected_outcome_id": outcome.id,
        "resolved_at": now.isoformat(),
    }

    tasks = list(tasks)
    conditionals_by_id = {c.id: c for c in conditionals}
    resolved = conditional.model_copy(update=conditional_update)
    conditionals_by_id[conditional.id] = resolved

    dependents = [task for task in tasks if task.blocked_by_conditional_id == conditional.id]
    task_updates, switched_to = _plan_task_updates(outcome, conditional, dependents, conditionals_by_id)

    # Re-run the overlay on the post-resolution snapshot
    updated_by_id = {task.id: task for task in tasks}
    for task_id, update in task_updates.items():
        updated_by_id[task_id] = updated_by_id[task_id].model_copy(update=update)
    for task in dependents:
        state = _blocking_state(updated_by_id[task.id], updated_by_id, conditionals_by_id)
        if state.status != updated_by_id[task.id].status:
            task_updates[task.id]["status"] = TaskStatus(state.status)

    logger.info(
        "Planned conditional resolution",
        extra={
            "conditional_id": conditional.id,
            "outcome_id": outcome.id,
            "action": str(outcome.action),
            "dependents": len(dependents),
        },
    )

    return ResolutionPlan(
        conditional_id=conditional.id,
        outcome_id=outcome.id,
        conditional_update=conditional_update,
        task_updates={task_id: update for task_id, update in task_updates.items() if update},
        switched_to_fallback=switched_to,
    )
