# Overview: Transaction executor for ledger operations; one DB transaction per attempt, bounded retry.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InternalLedgerError, LedgerError, TransientStoreFailure
from ..extensions import db

T = TypeVar("T")

# Lock waits, "database is locked", deadlocks, serialization aborts and
# optimistic version conflicts. Every attempt re-reads committed state.
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_ledger_transaction(session: Session) -> None:
    """
    Open the attempt's transaction with the configured wait budgets.

    SQLite takes the writer lock up front (BEGIN IMMEDIATE) and waits up to
    the engine's busy timeout for it. PostgreSQL gets per-transaction lock
    and statement timeouts.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        lock_ms = int(current_app.config["LOCK_WAIT_SECONDS"] * 1000)
        statement_ms = int(current_app.config["TRANSACTION_TIMEOUT_SECONDS"] * 1000)
        session.execute(text(f"SET LOCAL lock_timeout = {lock_ms}"))
        session.execute(text(f"SET LOCAL statement_timeout = {statement_ms}"))


def run_with_retry(func: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.0, label: str = "ledger operation") -> T:
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Ledger errors and anything unexpected
    roll back and propagate on the first occurrence. When the attempts run
    out, the last transient error is surfaced as TransientStoreFailure.
    """
    attempts = max(1, int(attempts))
    last_exc: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.warning(
                "%s failed on attempt %d/%d: %s", label, attempt, attempts, exc
            )
            if attempt < attempts and backoff_base:
                time.sleep(backoff_base * (2 ** (attempt - 1)))
        except LedgerError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise InternalLedgerError(str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise

    current_app.logger.error("%s failed after %d attempt(s): %s", label, attempts, last_exc)
    raise TransientStoreFailure(
        "Transaction failed after multiple retries" if attempts > 1 else "Transaction failed",
        details={"attempts": attempts, "last_error": str(last_exc)},
    ) from last_exc


def run_in_transaction(work: Callable[[Session], T], *, attempts: int | None = None, backoff_base: float | None = None, label: str = "ledger operation") -> T:
    """
    Run work(session) inside one ledger transaction and commit it.

    work receives the session explicitly and must do all of its reads and
    writes through it; nothing it does is visible until the commit at the
    end of the attempt.
    """
    if attempts is None:
        attempts = current_app.config["SALE_RETRY_ATTEMPTS"]
    if backoff_base is None:
        backoff_base = current_app.config["RETRY_BACKOFF_SECONDS"]

    def _attempt() -> T:
        session = db.session
        begin_ledger_transaction(session)
        result = work(session)
        session.commit()
        return result

    return run_with_retry(_attempt, attempts=attempts, backoff_base=backoff_base, label=label)
