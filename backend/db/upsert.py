"""
Create-if-absent-else-overwrite writes keyed by a unique constraint.

Uses the dialect's native ``INSERT ... ON CONFLICT DO UPDATE`` so the write is
atomic at the storage layer (last writer wins).
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def upsert(
    db: AsyncSession,
    model,
    *,
    values: dict[str, Any],
    conflict_columns: list[str],
    update_values: dict[str, Any],
) -> None:
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upsert not supported for dialect: {dialect}")

    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=update_values)
    await db.execute(stmt)
