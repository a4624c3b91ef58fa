"""Conditionals module: uncertain events gating tasks."""


class ConditionalsModule:
    """Conditionals with outcomes that activate, postpone or re-route dependent tasks."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "conditionals"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Uncertain external events and the blocking they impose on tasks"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "conditionals": """CREATE TABLE IF NOT EXISTS conditionals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        expected_date TEXT NOT NULL,
        urgency TEXT NOT NULL DEFAULT 'medium'
            CHECK (urgency IN ('low', 'medium', 'high', 'critical')),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'resolved', 'failed')),
        outcomes TEXT NOT NULL DEFAULT '[]',
        selected_outcome_id TEXT,
        resolved_at TEXT,
        fallback_conditional_id TEXT,
        fallback_postpone_days INTEGER
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_conditionals_owner_id ON conditionals (owner_id)",
            "CREATE INDEX IF NOT EXISTS idx_conditionals_status ON conditionals (status)",
        ]
