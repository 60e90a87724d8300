"""Database migration utilities"""
import structlog
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _column_names(sync_conn, table_name: str) -> set[str]:
    return {col["name"] for col in inspect(sync_conn).get_columns(table_name)}


async def add_user_id_column_if_missing(engine: AsyncEngine):
    """Add user_id column to stock_movements for databases created by the legacy
    schema, which recorded movements without an actor."""
    async with engine.begin() as conn:
        existing_columns = await conn.run_sync(_column_names, "stock_movements")

        if "user_id" in existing_columns:
            logger.debug("user_id column already exists in stock_movements table")
            return

        logger.info("Adding user_id column to stock_movements table...")
        # Nullable: historical movements have no known actor
        await conn.execute(
            text("""
                ALTER TABLE stock_movements
                ADD COLUMN user_id VARCHAR(255)
            """)
        )
        logger.info("Successfully added user_id column to stock_movements table")
