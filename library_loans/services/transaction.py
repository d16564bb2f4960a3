"""Transaction scope shared by services that mutate the ledger or catalog"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from library_loans.config import settings
from library_loans.domain.exceptions import LoanLockTimeoutError, StorageError
from library_loans.infrastructure.database.locks import RowLockRegistry, row_locks

# PostgreSQL SQLSTATE lock_not_available
_PG_LOCK_NOT_AVAILABLE = "55P03"


class TransactionalService:
    """Base for services that run all-or-nothing units of work"""

    def __init__(
        self,
        db: Session,
        locks: Optional[RowLockRegistry] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.db = db
        self.locks = locks or row_locks
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.lock_timeout_seconds

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        Commit on success, roll back on any error.

        Rule violations raised inside the block pass through unchanged;
        SQLAlchemy failures become StorageError (or LoanLockTimeoutError
        when the database gave up waiting on a row lock).
        """
        try:
            self._apply_lock_timeout()
            yield
            self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            if getattr(e.orig, "pgcode", None) == _PG_LOCK_NOT_AVAILABLE:
                raise LoanLockTimeoutError("Database lock wait timed out") from e
            raise StorageError(f"Database error: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Database error: {e}") from e
        except Exception:
            self.db.rollback()
            raise

    def _apply_lock_timeout(self) -> None:
        """Bound FOR UPDATE waits on databases that support it"""
        if self.db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(self.lock_timeout * 1000)
            self.db.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
