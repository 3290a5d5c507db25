# Overview: Atomic unit, retry and row-locking helpers shared by every mutating service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class RetryableConflict(Exception):
    """
    Infrastructure conflict that a fresh attempt of the unit will resolve.

    Raised when a lazily created row (balance, sequence) was inserted by a
    concurrent unit between our read and our insert.
    """


RETRYABLE_ERRORS = (OperationalError, StaleDataError, RetryableConflict)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version column on
    the locked document is what serializes writers.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks, busy database), StaleDataError
    (optimistic version conflicts) and RetryableConflict (insert races).
    Domain errors propagate on the first attempt.
    """
    if attempts is None:
        attempts = current_app.config.get("ATOMIC_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("ATOMIC_RETRY_BACKOFF", 0.1)
    attempts = max(1, int(attempts))

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying atomic unit after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))


def run_atomic(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func as one atomic unit: commit on success, roll back on any error.

    func must not commit; it is re-run from scratch on a retryable conflict,
    so it has to re-read everything it depends on. Units never nest: services
    compose the non-committing helpers instead of calling each other's
    public operations.
    """
    def _unit():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_unit, attempts=attempts, backoff_base=backoff_base)
