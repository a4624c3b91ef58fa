"""Outreach module: daily contact logging per program."""


class OutreachModule:
    """Outreach log with per-program daily targets."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "outreach"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Outreach contact log and daily target tracking"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "outreach_entries": """CREATE TABLE IF NOT EXISTS outreach_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        owner_id TEXT NOT NULL,
        program TEXT NOT NULL,
        business_name TEXT NOT NULL DEFAULT '',
        channel TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'sent',
        date TEXT NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_outreach_entries_owner_date ON outreach_entries (owner_id, date)",
        ]
