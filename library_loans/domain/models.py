"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class LoanStatus(str, Enum):
    """Status derived from a loan's dates on every read, never stored"""

    ACTIVE = "active"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    CRITICAL_OVERDUE = "critical_overdue"
    COMPLETED = "completed"


class UrgencyLevel(str, Enum):
    """Follow-up priority for an overdue loan"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RejectionReason(str, Enum):
    """Why a loan request or return was refused"""

    BOOK_UNAVAILABLE = "book_unavailable"
    LOAN_LIMIT_REACHED = "loan_limit_reached"
    BORROWER_HAS_OVERDUE_LOANS = "borrower_has_overdue_loans"
    ALREADY_RETURNED = "already_returned"


@dataclass
class Book:
    """Catalog entry"""

    id: int
    title: str
    author: str
    genre: Optional[str]
    available: bool
    isbn: Optional[str] = None


@dataclass
class Borrower:
    """Registered library user"""

    id: int
    name: str
    email: str
    phone: Optional[str] = None


@dataclass
class Loan:
    """Ledger entry linking one book to one borrower"""

    id: int
    book_id: int
    borrower_id: int
    loan_date: date
    due_date: date
    returned: bool
    returned_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return not self.returned


@dataclass
class LoanEligibility:
    """Output of the loan policy check"""

    allowed: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None


@dataclass
class LoanDetail:
    """Loan enriched with every derived field"""

    loan: Loan
    book: Book
    borrower: Borrower
    status: LoanStatus
    days_overdue: int
    days_remaining: Optional[int]
    duration_days: int
    days_elapsed: int


@dataclass
class OverdueLoan:
    """Overdue loan annotated with its urgency tier"""

    loan: Loan
    book: Book
    borrower: Borrower
    days_overdue: int
    urgency: UrgencyLevel


@dataclass
class CheckoutReceipt:
    """Outcome of a successful checkout, counted inside the creating transaction"""

    loan: Loan
    borrower_active_loans: int


@dataclass
class ReturnReceipt:
    """Outcome of a successful return"""

    loan: Loan
    on_time: bool
    days_late: int


@dataclass
class BorrowerLoanSummary:
    """Ledger counts used by borrower deletion and eligibility checks"""

    borrower_id: int
    active_loans: int
    overdue_loans: int


@dataclass
class LibraryStats:
    """Dashboard counters"""

    total_books: int
    available_books: int
    total_borrowers: int
    active_loans: int
    overdue_loans: int
