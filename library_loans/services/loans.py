"""Loan service - atomic loan lifecycle operations over the ledger and catalog"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Type

from sqlalchemy.orm import Session

from library_loans.domain.exceptions import (
    BookUnavailableError,
    BorrowerHasOverdueLoansError,
    LoanLimitReachedError,
    LoanRejectedError,
    NotFoundError,
    AlreadyReturnedError,
)
from library_loans.domain.models import (
    BorrowerLoanSummary,
    CheckoutReceipt,
    LibraryStats,
    Loan,
    LoanDetail,
    LoanEligibility,
    OverdueLoan,
    RejectionReason,
    ReturnReceipt,
)
from library_loans.domain.policy import LoanPolicy
from library_loans.infrastructure.database.locks import RowLockRegistry
from library_loans.infrastructure.database.models import LoanRow
from library_loans.infrastructure.database.repositories import (
    BookRepository,
    BorrowerRepository,
    LoanRepository,
    to_book,
    to_borrower,
    to_loan,
)
from library_loans.infrastructure.observability.metrics import (
    record_loan_created,
    record_rejection,
    record_return,
)
from library_loans.services.transaction import TransactionalService
from library_loans.utils.date_utils import days_between, today as current_day

logger = logging.getLogger(__name__)

REJECTION_ERRORS: Dict[RejectionReason, Type[LoanRejectedError]] = {
    RejectionReason.BOOK_UNAVAILABLE: BookUnavailableError,
    RejectionReason.LOAN_LIMIT_REACHED: LoanLimitReachedError,
    RejectionReason.BORROWER_HAS_OVERDUE_LOANS: BorrowerHasOverdueLoansError,
    RejectionReason.ALREADY_RETURNED: AlreadyReturnedError,
}


class LoanService(TransactionalService):
    """
    Orchestrates the loan policy against the book, borrower and loan stores.

    Mutations hold the row locks of every row they touch for the whole
    transaction (lock order: loan, book, borrower) and either commit all
    writes or none of them.
    """

    def __init__(
        self,
        db: Session,
        policy: Optional[LoanPolicy] = None,
        today: Optional[Callable[[], date]] = None,
        locks: Optional[RowLockRegistry] = None,
        lock_timeout: Optional[float] = None,
    ):
        super().__init__(db, locks=locks, lock_timeout=lock_timeout)
        self.policy = policy or LoanPolicy()
        self.today = today or current_day
        self.books = BookRepository(db)
        self.borrowers = BorrowerRepository(db)
        self.loans = LoanRepository(db)

    def create_loan(
        self,
        book_id: int,
        borrower_id: int,
        loan_date: Optional[date] = None,
        duration_days: Optional[int] = None,
    ) -> Loan:
        """Lend a book to a borrower. See checkout for the flow and errors."""
        return self.checkout(book_id, borrower_id, loan_date=loan_date, duration_days=duration_days).loan

    def checkout(
        self,
        book_id: int,
        borrower_id: int,
        loan_date: Optional[date] = None,
        duration_days: Optional[int] = None,
    ) -> CheckoutReceipt:
        """
        Lend a book to a borrower and report the borrower's new active count.

        Flow:
        1. Resolve loan and due dates before any row lookup, so a bad date
           is reported even when the book or borrower does not exist
        2. Lock the book and borrower rows
        3. Re-count active/overdue loans and run the eligibility check
        4. Insert the loan and mark the book unavailable

        Raises:
            InvalidDateRangeError: Loan date in the past or duration out of range
            NotFoundError: Book or borrower does not exist
            BookUnavailableError, LoanLimitReachedError, BorrowerHasOverdueLoansError
            LoanLockTimeoutError: A row lock could not be acquired in time
        """
        today = self.today()
        start_date = self.policy.resolve_loan_date(today, loan_date)
        due_date = self.policy.compute_due_date(today, start_date, duration_days)

        with self.locks.hold("book", book_id, self.lock_timeout):
            with self.locks.hold("borrower", borrower_id, self.lock_timeout):
                with self._transaction():
                    db_book = self.books.get_book_for_update(book_id)
                    if db_book is None:
                        raise NotFoundError("Book", book_id)

                    db_borrower = self.borrowers.get_borrower_for_update(borrower_id)
                    if db_borrower is None:
                        raise NotFoundError("Borrower", borrower_id)

                    active_count = self.loans.count_active_for_borrower(borrower_id)
                    eligibility = self.policy.can_create_loan(
                        to_book(db_book),
                        active_loan_exists_for_book=self.loans.count_active_for_book(book_id) > 0,
                        borrower_active_loan_count=active_count,
                        borrower_has_overdue_loan=self.loans.count_overdue_for_borrower(borrower_id, today) > 0,
                    )
                    if not eligibility.allowed:
                        self._reject(eligibility, book_id=book_id, borrower_id=borrower_id)

                    db_loan = self.loans.create_loan(
                        book_id=book_id,
                        borrower_id=borrower_id,
                        loan_date=start_date,
                        due_date=due_date,
                    )
                    self.books.set_available(db_book, False)
                    loan = to_loan(db_loan)

        record_loan_created()
        logger.info(
            "Loan created",
            extra={"loan_id": loan.id, "book_id": book_id, "borrower_id": borrower_id, "due_date": due_date.isoformat()},
        )
        return CheckoutReceipt(loan=loan, borrower_active_loans=active_count + 1)

    def return_loan(self, loan_id: int) -> ReturnReceipt:
        """
        Close an active loan and release its book.

        Raises:
            NotFoundError: Loan does not exist
            AlreadyReturnedError: Loan was already returned; nothing is written
            LoanLockTimeoutError: A row lock could not be acquired in time
        """
        today = self.today()

        with self.locks.hold("loan", loan_id, self.lock_timeout):
            book_id = self._book_id_for(loan_id)
            with self.locks.hold("book", book_id, self.lock_timeout):
                with self._transaction():
                    db_loan = self._get_loan_for_update(loan_id)
                    if db_loan.returned:
                        self._reject(
                            LoanEligibility(
                                allowed=False,
                                reason=RejectionReason.ALREADY_RETURNED,
                                message=f"Loan {loan_id} was already returned",
                            ),
                            book_id=book_id,
                            borrower_id=db_loan.borrower_id,
                        )

                    db_book = self.books.get_book_for_update(book_id)
                    self.loans.mark_returned(db_loan, today)
                    self.books.set_available(db_book, True)
                    loan = to_loan(db_loan)

        days_late = self.policy.days_late(loan)
        record_return(days_late)
        logger.info(
            "Loan returned",
            extra={"loan_id": loan.id, "book_id": book_id, "days_late": days_late},
        )
        return ReturnReceipt(loan=loan, on_time=days_late == 0, days_late=days_late)

    def delete_loan(self, loan_id: int) -> Loan:
        """
        Administrative removal of a ledger entry.

        An active loan releases its book in the same transaction.
        """
        with self.locks.hold("loan", loan_id, self.lock_timeout):
            book_id = self._book_id_for(loan_id)
            with self.locks.hold("book", book_id, self.lock_timeout):
                with self._transaction():
                    db_loan = self._get_loan_for_update(loan_id)
                    loan = to_loan(db_loan)
                    if loan.is_active:
                        db_book = self.books.get_book_for_update(book_id)
                        self.books.set_available(db_book, True)
                    self.loans.delete_loan(db_loan)

        logger.info("Loan deleted", extra={"loan_id": loan_id, "book_id": book_id, "was_active": loan.is_active})
        return loan

    def list_overdue_loans(self) -> List[OverdueLoan]:
        """Active loans past due, most overdue first, with urgency tiers"""
        today = self.today()
        overdue = []
        for db_loan in self.loans.list_overdue(today):
            loan = to_loan(db_loan)
            days = self.policy.days_overdue(loan, today)
            overdue.append(
                OverdueLoan(
                    loan=loan,
                    book=to_book(db_loan.book),
                    borrower=to_borrower(db_loan.borrower),
                    days_overdue=days,
                    urgency=self.policy.urgency_for(days),
                )
            )
        return overdue

    def loan_status_report(self, loan_id: int) -> LoanDetail:
        db_loan = self.loans.get_loan(loan_id)
        if db_loan is None:
            raise NotFoundError("Loan", loan_id)
        return self._detail(db_loan, self.today())

    def list_loans(
        self,
        returned: Optional[bool] = None,
        overdue: Optional[bool] = None,
        borrower_id: Optional[int] = None,
        book_id: Optional[int] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> List[LoanDetail]:
        today = self.today()
        rows = self.loans.list_loans(
            today,
            returned=returned,
            overdue=overdue,
            borrower_id=borrower_id,
            book_id=book_id,
            limit=limit,
            offset=offset,
        )
        return [self._detail(db_loan, today) for db_loan in rows]

    def book_has_active_loan(self, book_id: int) -> bool:
        return self.loans.count_active_for_book(book_id) > 0

    def borrower_loan_summary(self, borrower_id: int) -> BorrowerLoanSummary:
        if self.borrowers.get_borrower(borrower_id) is None:
            raise NotFoundError("Borrower", borrower_id)
        return BorrowerLoanSummary(
            borrower_id=borrower_id,
            active_loans=self.loans.count_active_for_borrower(borrower_id),
            overdue_loans=self.loans.count_overdue_for_borrower(borrower_id, self.today()),
        )

    def library_stats(self) -> LibraryStats:
        today = self.today()
        return LibraryStats(
            total_books=self.books.count_books(),
            available_books=self.books.count_books(available_only=True),
            total_borrowers=self.borrowers.count_borrowers(),
            active_loans=self.loans.count_active(),
            overdue_loans=self.loans.count_overdue(today),
        )

    def _detail(self, db_loan: LoanRow, today: date) -> LoanDetail:
        loan = to_loan(db_loan)
        return LoanDetail(
            loan=loan,
            book=to_book(db_loan.book),
            borrower=to_borrower(db_loan.borrower),
            status=self.policy.derive_status(loan, today),
            days_overdue=self.policy.days_overdue(loan, today),
            days_remaining=self.policy.days_remaining(loan, today),
            duration_days=self.policy.loan_duration(loan),
            days_elapsed=max(days_between(loan.loan_date, today), 0),
        )

    def _book_id_for(self, loan_id: int) -> int:
        # book_id never changes after insert, so reading it before locking is safe
        db_loan = self.loans.get_loan(loan_id)
        if db_loan is None:
            raise NotFoundError("Loan", loan_id)
        return db_loan.book_id

    def _get_loan_for_update(self, loan_id: int) -> LoanRow:
        db_loan = self.loans.get_loan_for_update(loan_id)
        if db_loan is None:
            # Deleted between the unlocked read and the lock
            raise NotFoundError("Loan", loan_id)
        return db_loan

    def _reject(self, eligibility: LoanEligibility, **context: Optional[int]) -> None:
        reason = eligibility.reason
        record_rejection(reason.value)
        logger.warning(
            f"Loan rejected: {eligibility.message}",
            extra={"reason": reason.value, **context},
        )
        raise REJECTION_ERRORS[reason](eligibility.message)
