"""Pure state transition functions for task lifecycle management.

Every function returns the partial update to persist instead of writing it,
so the same rules serve the services and the resolver snapshots.
"""

import logging
import math
from datetime import datetime
from typing import Any

from cortex.core.config import constants
from cortex.core.errors import InvalidStateTransitionError
from cortex.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)


# Transitions a user action may request. Blocked is resolver-owned.
USER_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.DONE},
    TaskStatus.IN_PROGRESS: {TaskStatus.PENDING, TaskStatus.DONE},
    TaskStatus.DONE: {TaskStatus.PENDING, TaskStatus.IN_PROGRESS},
    TaskStatus.BLOCKED: set(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Whether a user action may move a task from ``current`` to ``target``."""
    return target in USER_TRANSITIONS.get(current, set())


def transition(task: Task, target: TaskStatus, *, now: datetime) -> dict[str, Any]:
    """Build the update for a user-requested status change.

    Entering ``done`` sets progress to 100 and stamps ``completed_at``;
    leaving it resets progress to 0 and clears the stamp.

    Raises:
        InvalidStateTransitionError: If the move is not a user transition
    """
    if task.status == target:
        return {}

    if not can_transition(task.status, target):
        msg = f"Cannot transition task {task.id} from {task.status} to {target}"
        raise InvalidStateTransitionError(msg)

    update: dict[str, Any] = {"status": target}
    if target == TaskStatus.DONE:
        update["progress"] = constants.PROGRESS_MAX
        update["completed_at"] = now.isoformat()
    elif task.status == TaskStatus.DONE:
        update["progress"] = constants.PROGRESS_MIN
        update["completed_at"] = None

    logger.debug("Task transition %s: %s -> %s", task.id, task.status, target)
    return update


def toggle_completion(task: Task, *, now: datetime) -> dict[str, Any]:
    """Flip between ``done`` and ``pending``."""
    target = TaskStatus.PENDING if task.status == TaskStatus.DONE else TaskStatus.DONE
    return transition(task, target, now=now)


def apply_blocking(task: Task, *, blocked: bool) -> dict[str, Any] | None:
    """Overlay the resolver verdict on a task.

    Returns:
        The status update, or None when nothing changes. Done tasks are never
        blocked; released tasks go back to ``pending``.
    """
    if blocked and task.status not in (TaskStatus.BLOCKED, TaskStatus.DONE):
        return {"status": TaskStatus.BLOCKED}
    if not blocked and task.status == TaskStatus.BLOCKED:
        return {"status": TaskStatus.PENDING}
    return None


def display_progress(task: Task) -> int:
    """Progress to render: checklist completion when there is a checklist, else stored progress."""
    checklist = task.content.checklist
    if not checklist:
        return task.progress
    done_items = sum(1 for item in checklist if item.done)
    return int(math.floor(done_items / len(checklist) * 100 + 0.5))
