"""Loan policy engine - pure business rules for loan eligibility and status"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from library_loans.config import Settings
from library_loans.domain.exceptions import InvalidDateRangeError
from library_loans.domain.models import (
    Book,
    Loan,
    LoanEligibility,
    LoanStatus,
    RejectionReason,
    UrgencyLevel,
)
from library_loans.utils.date_utils import add_days, days_between


@dataclass(frozen=True)
class LoanPolicyConfig:
    """Business limits for lending"""

    max_active_loans: int = 3
    default_loan_days: int = 14
    min_loan_days: int = 1
    max_loan_days: int = 30
    due_soon_days: int = 2
    grace_days: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "LoanPolicyConfig":
        return cls(
            max_active_loans=settings.max_active_loans,
            default_loan_days=settings.default_loan_days,
            min_loan_days=settings.min_loan_days,
            max_loan_days=settings.max_loan_days,
            due_soon_days=settings.due_soon_days,
            grace_days=settings.grace_days,
        )


class LoanPolicy:
    """
    Decision logic over already-fetched ledger state.

    Nothing here touches the database; callers pass in counts and rows,
    and pass `today` explicitly so every rule is deterministic.
    """

    def __init__(self, config: Optional[LoanPolicyConfig] = None):
        self.config = config or LoanPolicyConfig()

    def can_create_loan(
        self,
        book: Book,
        active_loan_exists_for_book: bool,
        borrower_active_loan_count: int,
        borrower_has_overdue_loan: bool,
    ) -> LoanEligibility:
        """
        Decide whether a new loan may be created.

        Checks, in order (first failure is reported):
        1. Book has no active loan and is flagged available
        2. Borrower holds fewer than max_active_loans loans
        3. Borrower has no active loan past its due date
        """
        if active_loan_exists_for_book or not book.available:
            return LoanEligibility(
                allowed=False,
                reason=RejectionReason.BOOK_UNAVAILABLE,
                message=f"Book {book.id} is not available for loan",
            )

        if borrower_active_loan_count >= self.config.max_active_loans:
            return LoanEligibility(
                allowed=False,
                reason=RejectionReason.LOAN_LIMIT_REACHED,
                message=(
                    f"Borrower already has {borrower_active_loan_count} active loans. "
                    f"Limit: {self.config.max_active_loans}"
                ),
            )

        if borrower_has_overdue_loan:
            return LoanEligibility(
                allowed=False,
                reason=RejectionReason.BORROWER_HAS_OVERDUE_LOANS,
                message="Borrower has overdue loans and must return them before borrowing again",
            )

        return LoanEligibility(allowed=True)

    def compute_due_date(
        self,
        today: date,
        loan_date: Optional[date] = None,
        duration_days: Optional[int] = None,
    ) -> date:
        """
        Due date = loan_date + duration.

        loan_date defaults to today and may not be earlier than today.
        duration defaults to default_loan_days and must lie in
        [min_loan_days, max_loan_days].

        Raises:
            InvalidDateRangeError: On a past loan date or out-of-range duration
        """
        loan_date = self.resolve_loan_date(today, loan_date)

        if duration_days is None:
            duration_days = self.config.default_loan_days

        if not self.config.min_loan_days <= duration_days <= self.config.max_loan_days:
            raise InvalidDateRangeError(
                f"Loan duration must be between {self.config.min_loan_days} and "
                f"{self.config.max_loan_days} days, got {duration_days}"
            )

        return add_days(loan_date, duration_days)

    def resolve_loan_date(self, today: date, loan_date: Optional[date] = None) -> date:
        if loan_date is None:
            return today
        if loan_date < today:
            raise InvalidDateRangeError(f"Loan date {loan_date.isoformat()} is in the past")
        return loan_date

    def derive_status(self, loan: Loan, today: date) -> LoanStatus:
        """
        Map a loan to exactly one status.

        - completed:        returned
        - critical_overdue: past due by more than grace_days
        - overdue:          past due by 1..grace_days
        - due_soon:         due today or within due_soon_days
        - active:           everything else
        """
        if loan.returned:
            return LoanStatus.COMPLETED

        if loan.due_date < today:
            if self.days_overdue(loan, today) > self.config.grace_days:
                return LoanStatus.CRITICAL_OVERDUE
            return LoanStatus.OVERDUE

        if days_between(today, loan.due_date) <= self.config.due_soon_days:
            return LoanStatus.DUE_SOON

        return LoanStatus.ACTIVE

    def days_overdue(self, loan: Loan, today: date) -> int:
        if loan.returned or loan.due_date >= today:
            return 0
        return days_between(loan.due_date, today)

    def days_remaining(self, loan: Loan, today: date) -> Optional[int]:
        """Signed days until due; negative when overdue, None once returned"""
        if loan.returned:
            return None
        return days_between(today, loan.due_date)

    def days_late(self, loan: Loan) -> int:
        """Days between due date and actual return (0 when on time or still out)"""
        if loan.returned_date is None:
            return 0
        return max(days_between(loan.due_date, loan.returned_date), 0)

    @staticmethod
    def loan_duration(loan: Loan) -> int:
        return days_between(loan.loan_date, loan.due_date)

    @staticmethod
    def urgency_for(days_overdue: int) -> UrgencyLevel:
        """
        Urgency tiers for overdue follow-up:
        - low:      < 3 days
        - medium:   3-7 days
        - high:     8-14 days
        - critical: > 14 days
        """
        if days_overdue > 14:
            return UrgencyLevel.CRITICAL
        elif days_overdue > 7:
            return UrgencyLevel.HIGH
        elif days_overdue >= 3:
            return UrgencyLevel.MEDIUM
        else:
            return UrgencyLevel.LOW
