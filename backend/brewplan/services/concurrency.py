# Overview: Service-layer helpers for row locking, retries, and optimistic version conflicts.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def check_expected_version(entity, expected_version: int | None, label: str) -> None:
    """
    Client-supplied optimistic check.

    The caller read version N; if the row is no longer at N somebody else
    wrote in between and the request is based on stale state.
    """
    if expected_version is None:
        return
    if entity.version_id != expected_version:
        raise ConcurrencyConflict(
            f"{label} was modified concurrently "
            f"(expected version {expected_version}, found {entity.version_id})"
        )


def commit_or_conflict(label: str = "Record") -> None:
    """
    Commit the current session, mapping optimistic-lock failures.

    StaleDataError means the UPDATE ... WHERE version_id = N matched no row.
    """
    try:
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConcurrencyConflict(f"{label} was modified concurrently; reload and retry") from exc


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, savepoint: bool = False):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).

    savepoint=True runs each attempt inside a SAVEPOINT and a failed attempt
    rolls back only that savepoint. The caller's pending writes survive the
    retry; use it for helpers that run inside another operation's transaction.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            if savepoint:
                with db.session.begin_nested():
                    return func()
            return func()
        except (OperationalError, StaleDataError) as exc:
            if not savepoint:
                db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
