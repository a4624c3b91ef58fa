"""Protocol implemented by the tasks, conditionals, outreach and achievements modules."""

from typing import Protocol


class Module(Protocol):
    """A feature module that owns one or more owner-scoped collections.

    Every table a module declares carries an ``owner_id`` column; the services
    never read or write rows belonging to another owner.
    """

    @property
    def name(self) -> str:
        """Registry key, e.g. ``"tasks"``."""
        ...

    @property
    def description(self) -> str: ...

    def get_table_schemas(self) -> dict[str, str]:
        """Map each collection name to its ``CREATE TABLE IF NOT EXISTS`` statement."""
        ...

    def get_indexes(self) -> list[str]:
        """``CREATE INDEX IF NOT EXISTS`` statements for the module's collections."""
        ...
