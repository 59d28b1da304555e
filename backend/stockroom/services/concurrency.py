# Overview: Transaction helpers for write paths that contend on the same rows.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, TimeoutError as SATimeoutError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionFailed, UpstreamTimeout
from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The ledger never relies on the lock alone; stock changes are also
    conditional UPDATEs guarded by a floor predicate.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session back
    and propagates unchanged.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, *, operation: str, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Run `func` and commit as one unit of work.

    func() performs its reads and writes on db.session and returns the result;
    nothing it did is visible to other sessions until the commit here. Retryable
    failures roll back and run func() again from scratch; once attempts are
    exhausted the caller sees TransactionFailed.
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_COMMIT_ATTEMPTS", 2)

    def _op():
        result = func()
        db.session.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except RETRYABLE_ERRORS as exc:
        current_app.logger.error("Transaction for %s failed after %s attempt(s): %s", operation, attempts, exc)
        raise TransactionFailed() from exc


def run_read(func, *, operation: str):
    """
    Run a read-only query, mapping pool/statement timeouts to UpstreamTimeout
    so callers can tell a slow datastore from a data error.
    """
    try:
        return func()
    except SATimeoutError as exc:
        db.session.rollback()
        current_app.logger.warning("Read for %s timed out: %s", operation, exc)
        raise UpstreamTimeout() from exc
