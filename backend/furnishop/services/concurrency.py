# Overview: Row locking and retry helpers shared by the workflow services.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRY_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 0.1


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a workflow reads and then writes
    (products while checking stock, transfers, contracts, installments).

    SQLite ignores the clause; version_id columns still catch lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = RETRY_ATTEMPTS, backoff_base: float = RETRY_BACKOFF_SECONDS):
    """
    Run a unit of database work, retrying lock contention and stale-row conflicts.

    The session is rolled back before each retry so the whole unit is
    re-executed from scratch. Business errors raised by `func` propagate
    immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def commit_with_retry(*, attempts: int = RETRY_ATTEMPTS, backoff_base: float = RETRY_BACKOFF_SECONDS):
    """Commit the request's transaction."""
    return run_with_retry(db.session.commit, attempts=attempts, backoff_base=backoff_base)
