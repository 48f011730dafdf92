# Overview: Service-layer helpers for concurrency; row locks, atomic counters and retried transactions.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the database-wide writer lock serializes the writes instead.
    """
    return query.with_for_update()


def atomic_increment(model, row_id: int, *, guard=None, values: dict | None = None, **deltas) -> int:
    """
    Apply relative updates (col = col + delta) in a single UPDATE statement.

    WHY: Read-modify-write of balances, stock and loyalty counters loses
    updates under concurrency. A relative UPDATE is evaluated by the
    database against the current row value.

    Args:
        model: Mapped class (must have a version_id column)
        row_id: Primary key of the row to update
        guard: Optional extra WHERE clause (e.g. Product.stock >= qty)
        values: Optional absolute assignments applied in the same statement
                (values may be SQL expressions)
        **deltas: column name -> integer delta

    Returns:
        Number of rows updated (0 when the row is missing or the guard fails)
    """
    assignments = {}
    for column_name, delta in deltas.items():
        column = getattr(model, column_name)
        assignments[column] = column + delta
    for column_name, value in (values or {}).items():
        assignments[getattr(model, column_name)] = value
    assignments[model.version_id] = model.version_id + 1

    query = db.session.query(model).filter(model.id == row_id)
    if guard is not None:
        query = query.filter(guard)
    return query.update(assignments, synchronize_session="fetch")


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls back the
    session and propagates, so a failed operation never leaves partial
    writes pending.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
