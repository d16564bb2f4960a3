"""Domain-specific exceptions"""

from typing import Optional

from library_loans.domain.models import RejectionReason


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Referenced book, borrower or loan does not exist"""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class LoanRejectedError(DomainException):
    """A loan business rule refused the operation"""

    reason: RejectionReason

    def __init__(self, message: str, reason: Optional[RejectionReason] = None):
        if reason is not None:
            self.reason = reason
        super().__init__(message)


class BookUnavailableError(LoanRejectedError):
    """Book already has an active loan"""

    reason = RejectionReason.BOOK_UNAVAILABLE


class LoanLimitReachedError(LoanRejectedError):
    """Borrower is at the maximum number of simultaneous loans"""

    reason = RejectionReason.LOAN_LIMIT_REACHED


class BorrowerHasOverdueLoansError(LoanRejectedError):
    """Borrower must return overdue books before borrowing again"""

    reason = RejectionReason.BORROWER_HAS_OVERDUE_LOANS


class AlreadyReturnedError(LoanRejectedError):
    """Return requested on a loan that is already closed"""

    reason = RejectionReason.ALREADY_RETURNED


class InvalidDateRangeError(DomainException):
    """Loan date in the past or duration outside the allowed window"""

    pass


class LoanLockTimeoutError(DomainException):
    """Row lock could not be acquired in time; the caller may retry"""

    pass


class ActiveLoansError(DomainException):
    """Book or borrower cannot be deleted while loans are active"""

    def __init__(self, entity: str, entity_id: int, active_loans: int):
        self.entity = entity
        self.entity_id = entity_id
        self.active_loans = active_loans
        super().__init__(f"{entity} {entity_id} has {active_loans} active loan(s)")


class DuplicateEmailError(DomainException):
    """Borrower email is already registered"""

    pass


class StorageError(Exception):
    """Database failure unrelated to business rules"""

    pass
