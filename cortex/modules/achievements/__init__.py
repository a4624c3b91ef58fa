"""Achievements module: period progress and idempotent unlocks."""


class AchievementsModule:
    """Weekly, monthly and yearly achievements computed from task and outreach history."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "achievements"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Achievement progress tracking and unlock records"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "user_achievements": """CREATE TABLE IF NOT EXISTS user_achievements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        owner_id TEXT NOT NULL,
        achievement_id TEXT NOT NULL,
        period_key TEXT NOT NULL,
        unlocked_at TEXT NOT NULL,
        UNIQUE(owner_id, achievement_id, period_key)
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_user_achievements_owner_period ON user_achievements (owner_id, period_key)",
        ]
