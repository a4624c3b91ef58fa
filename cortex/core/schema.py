"""SQLite schema management driven by the module registry (code-first approach)."""

import logging

from cortex.core import db_client
from cortex.core.module_registry import get_all_indexes, get_all_table_schemas, register_default_modules


logger = logging.getLogger(__name__)


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered table and index if missing.

    Built-in modules are registered first, so calling this on a fresh process
    yields the full schema.
    """
    register_default_modules()
    schemas = get_all_table_schemas()
    indexes = get_all_indexes()

    conn = await db_client.get_connection(db_path=db_path)
    try:
        for table_name, ddl in schemas.items():
            await conn.execute(ddl)
            logger.debug("Ensured table", extra={"table": table_name})
        for ddl in indexes:
            await conn.execute(ddl)
        await conn.commit()
    except Exception as e:
        logger.error("schema_init_failed", extra={"error": str(e)})
        msg = f"Failed to initialize schema: {e}"
        raise db_client.DatabaseError(msg) from e

    logger.info("Database schema initialized", extra={"tables": len(schemas), "indexes": len(indexes)})
