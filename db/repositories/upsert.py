"""
db/repositories/upsert.py

Dialect-aware ``INSERT ... ON CONFLICT`` construction.

PostgreSQL is the production backend; SQLite backs the test suite. Both
support ``ON CONFLICT`` with ``RETURNING`` through their dialect-specific
``insert`` constructs, which share the same API.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.repositories.errors import UnsupportedDialectError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: Session, model: type) -> Any:
    """Return an ON CONFLICT-capable insert for *model* on the session's backend."""
    dialect = session.get_bind().dialect.name
    factory = _INSERT_BY_DIALECT.get(dialect)
    if factory is None:
        raise UnsupportedDialectError(
            f"Upserts are not supported on dialect {dialect!r}; "
            f"supported: {sorted(_INSERT_BY_DIALECT)}."
        )
    return factory(model)
