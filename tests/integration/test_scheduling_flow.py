"""End-to-end scheduling flows against a real SQLite database."""

from datetime import UTC, datetime

import pytest

from cortex.core.config import settings
from cortex.domain.conditional import ConditionalOutcome, ConditionalStatus
from cortex.domain.create_models import ConditionalCreate, OutreachCreate, TaskCreate
from cortex.domain.task import TaskStatus
from cortex.domain.update_models import TaskUpdate
from cortex.modules.achievements import service as achievement_service
from cortex.modules.conditionals import service as conditional_service
from cortex.modules.outreach import service as outreach_service
from cortex.modules.tasks import service as task_service


pytestmark = pytest.mark.integration

OWNER_ID = "owner-1"


async def test_milestone_gates_dependents(sqlite_db):
    milestone = await task_service.create_task(
        owner_id=OWNER_ID, data=TaskCreate(title="Sign contract", scope_key="2026-03-02", is_milestone=True)
    )
    dependent = await task_service.create_task(
        owner_id=OWNER_ID,
        data=TaskCreate(title="Kickoff", scope_key="2026-03-03", blocked_by_milestone_id=milestone.id),
    )
    assert dependent.status == TaskStatus.BLOCKED

    await task_service.toggle_completion(owner_id=OWNER_ID, task_id=milestone.id)

    released = await task_service.get_task(owner_id=OWNER_ID, task_id=dependent.id)
    assert released.status == TaskStatus.PENDING


async def test_postponed_conditional(sqlite_db):
    conditional = await conditional_service.create_conditional(
        owner_id=OWNER_ID,
        data=ConditionalCreate(
            title="Client approval",
            expected_date="2026-03-05",
            outcomes=[
                ConditionalOutcome(id="yes", label="Yes", type="success", action="activate"),
                ConditionalOutcome(id="later", label="Later", type="delayed", action="postpone", postpone_days=3),
            ],
        ),
    )
    task = await task_service.create_task(
        owner_id=OWNER_ID,
        data=TaskCreate(title="Build", scope_key="2026-03-06", start_time="13:00", end_time="15:00"),
    )
    await conditional_service.link_task_to_conditional(
        owner_id=OWNER_ID, task_id=task.id, conditional_id=conditional.id
    )

    resolved = await conditional_service.resolve_conditional(
        owner_id=OWNER_ID, conditional_id=conditional.id, outcome_id="later"
    )

    assert resolved.status == ConditionalStatus.RESOLVED
    assert resolved.outcomes[1].postpone_days == 3
    shifted = await task_service.get_task(owner_id=OWNER_ID, task_id=task.id)
    assert shifted.scope_key == "2026-03-09"
    assert (shifted.start_time, shifted.end_time) == ("13:00", "15:00")
    assert shifted.status == TaskStatus.BLOCKED


async def test_rollup_and_achievements(sqlite_db, monkeypatch):
    monkeypatch.setattr(settings, "user_timezone", "UTC")
    goal = await task_service.create_task(
        owner_id=OWNER_ID, data=TaskCreate(title="Launch", scope="month", scope_key="2026-03")
    )
    weights = {"2026-03-02": 40, "2026-03-03": 30, "2026-03-04": 30}
    for day, weight in weights.items():
        child = await task_service.create_task(
            owner_id=OWNER_ID,
            data=TaskCreate(title=f"Step {day}", scope_key=day, parent_task_id=goal.id, contribution_percent=weight),
        )
        completed = datetime.fromisoformat(f"{day}T18:00:00+00:00")
        await task_service.set_status(owner_id=OWNER_ID, task_id=child.id, status=TaskStatus.DONE, now=completed)

    await task_service.update_task(owner_id=OWNER_ID, task_id=goal.id, update=TaskUpdate(progress=100))
    assert await task_service.get_rollup_progress(owner_id=OWNER_ID, task_id=goal.id) == 100

    for _ in range(3):
        await outreach_service.log_outreach(owner_id=OWNER_ID, data=OutreachCreate(program="nova", date="2026-03-02"))

    recorded = await achievement_service.refresh_achievements(
        owner_id=OWNER_ID, as_of=datetime(2026, 3, 4, 21, 0, tzinfo=UTC)
    )

    assert ("streak_starter", "2026-W10") in {(r.achievement_id, r.period_key) for r in recorded}
    assert await achievement_service.refresh_achievements(
        owner_id=OWNER_ID, as_of=datetime(2026, 3, 4, 21, 0, tzinfo=UTC)
    ) == []
