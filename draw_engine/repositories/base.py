"""Dialect-aware persistence helpers shared by repositories."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Table, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


def insert_if_absent(
    session: Session,
    table: Table,
    values: dict[str, Any],
    index_elements: Sequence[str],
) -> bool:
    """INSERT unless a row with the same unique key exists.

    Returns True when this call created the row. A concurrent creator losing
    the race sees False, never an error.
    """

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(table).values(**values).on_conflict_do_nothing(index_elements=list(index_elements))
        return session.execute(stmt).rowcount == 1
    if dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(index_elements=list(index_elements))
        return session.execute(stmt).rowcount == 1

    savepoint = session.begin_nested()
    try:
        session.execute(insert(table).values(**values))
    except IntegrityError:
        savepoint.rollback()
        return False
    savepoint.commit()
    return True
