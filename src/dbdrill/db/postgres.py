import logging
from collections.abc import Sequence
from typing import Any

import asyncpg
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from dbdrill.core.ports.database import Column, Row
from dbdrill.errors import DatabaseError

logger = logging.getLogger(__name__)


def column_type_name(attr_type: Any) -> str:
    """Name a result column's type the way ``SearchParamType`` spells it (``text[]``, not ``_text``)."""
    if attr_type.kind == "array" and attr_type.name.startswith("_"):
        return attr_type.name[1:] + "[]"
    return str(attr_type.name)


class PostgresDatabase:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def fetch(self, query: str, params: Sequence[Any]) -> list[Row]:
        """Run ``query`` with positional ``$n`` parameters in one round trip."""
        try:
            async with self._engine.connect() as conn:
                raw = await conn.get_raw_connection()
                driver: asyncpg.Connection = raw.driver_connection
                statement = await driver.prepare(query)
                records = await statement.fetch(*params)
                columns = tuple(
                    Column(name=attr.name, type_name=column_type_name(attr.type))
                    for attr in statement.get_attributes()
                )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, SQLAlchemyError, OSError) as exc:
            logger.debug("Query failed: %s", exc)
            raise DatabaseError(f"error running SQL query: {exc}") from exc
        return [Row(columns=columns, values=tuple(record)) for record in records]

    async def ping(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database is not reachable")
            return False

    async def dispose(self) -> None:
        await self._engine.dispose()
