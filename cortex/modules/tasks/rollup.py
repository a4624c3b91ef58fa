"""Contribution rollup: parent progress computed from weighted children.

Rollup is a pull computation over a snapshot. Nothing here is persisted and
a parent never changes status because its rollup reaches 100.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable

from cortex.core.config import constants
from cortex.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)


def _effective_progress(child: Task) -> int:
    if child.status == TaskStatus.DONE:
        return constants.PROGRESS_MAX
    return child.progress


def rollup_progress(parent: Task, children: Iterable[Task]) -> int:
    """Weighted progress of ``parent``: sum of ``progress/100 * contribution_percent``.

    Children without a contribution weight add nothing, and unassigned weight
    is not redistributed. The result is rounded half-up and clamped to 0..100.
    """
    total = 0.0
    for child in children:
        if child.parent_task_id != parent.id or child.id == parent.id:
            continue
        weight = child.contribution_percent or 0
        total += _effective_progress(child) / 100 * weight

    rounded = int(math.floor(total + 0.5))
    return max(constants.PROGRESS_MIN, min(constants.PROGRESS_MAX, rounded))


def unassigned_contribution(children: Iterable[Task]) -> int:
    """Weight not claimed by any child; over-allocation is logged, not rejected."""
    children = list(children)
    assigned = sum(child.contribution_percent or 0 for child in children)
    if assigned > constants.PROGRESS_MAX:
        parent_ids = sorted({child.parent_task_id or "" for child in children})
        logger.warning(
            "Contribution over-allocated",
            extra={"assigned": assigned, "parent_task_ids": parent_ids},
        )
    return max(0, constants.PROGRESS_MAX - assigned)


def rollup_all(tasks: Iterable[Task]) -> dict[str, int]:
    """Rollup for every task in the snapshot that has at least one child."""
    tasks = list(tasks)
    by_id = {task.id: task for task in tasks}
    children: dict[str, list[Task]] = defaultdict(list)
    for task in tasks:
        # Dangling parent references mean "no parent"
        if task.parent_task_id and task.parent_task_id in by_id:
            children[task.parent_task_id].append(task)

    return {parent_id: rollup_progress(by_id[parent_id], kids) for parent_id, kids in children.items()}
