"""Tasks module: scheduling, lifecycle and rollup."""


class TasksModule:
    """Tasks module for time-boxed personal work.

    Provides:
    - Task CRUD scoped by owner
    - Time-grid geometry for the day canvas
    - State machine for the task lifecycle
    - Contribution rollup from child tasks
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Scheduled tasks with milestones, rollup and time-grid placement"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in-progress', 'done', 'blocked')),
        progress INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'critical')),
        scope TEXT NOT NULL DEFAULT 'day'
            CHECK (scope IN ('day', 'week', 'month', 'year', 'client')),
        scope_key TEXT NOT NULL DEFAULT '',
        start_time TEXT,
        end_time TEXT,
        deadline TEXT,
        parent_task_id TEXT,
        contribution_percent INTEGER CHECK (contribution_percent BETWEEN 0 AND 100),
        is_milestone INTEGER NOT NULL DEFAULT 0,
        milestone_conditions TEXT,
        blocked_by_milestone_id TEXT,
        blocked_by_conditional_id TEXT,
        original_scheduled_date TEXT,
        completed_at TEXT,
        content TEXT,
        color TEXT,
        CHECK ((start_time IS NULL) = (end_time IS NULL))
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_tasks_owner_id ON tasks (owner_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_owner_scope ON tasks (owner_id, scope, scope_key)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_parent_task_id ON tasks (parent_task_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_blocked_by_conditional_id ON tasks (blocked_by_conditional_id)",
        ]
