"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import List, Optional

from library_loans.domain.models import Book, Borrower, Loan, LoanDetail, LoanStatus, UrgencyLevel


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    book_id: int = Field(..., gt=0, description="Book to lend")
    borrower_id: int = Field(..., gt=0, description="Borrower receiving the book")
    loan_date: Optional[date] = Field(None, description="Start day; defaults to today, may not be in the past")
    duration_days: Optional[int] = Field(None, description="Loan length in days; defaults to 14")


class BookRef(BaseModel):
    """Book fields embedded in loan responses"""

    id: int
    title: str
    author: str
    genre: Optional[str] = None


class BorrowerRef(BaseModel):
    """Borrower fields embedded in loan responses"""

    id: int
    name: str
    email: str
    phone: Optional[str] = None


class LoanSchema(BaseModel):
    """Stored loan fields"""

    id: int
    book_id: int
    borrower_id: int
    loan_date: date
    due_date: date
    returned: bool
    returned_date: Optional[date] = None


class LoanCreatedResponse(BaseModel):
    """Response for POST /v1/loans"""

    loan: LoanSchema
    due_date: date
    duration_days: int
    borrower_active_loans: int


class LoanDetailResponse(BaseModel):
    """Response for GET /v1/loans/{loan_id} and items of GET /v1/loans"""

    loan: LoanSchema
    book: BookRef
    borrower: BorrowerRef
    status: LoanStatus
    days_overdue: int
    days_remaining: Optional[int] = None
    duration_days: int
    days_elapsed: int


class LoanListMetrics(BaseModel):
    """Aggregates over the returned page"""

    total: int
    active: int
    overdue: int
    critical: int


class LoanListResponse(BaseModel):
    """Response for GET /v1/loans"""

    loans: List[LoanDetailResponse]
    metrics: LoanListMetrics


class ReturnResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/return"""

    loan: LoanSchema
    expected_return_date: date
    returned_date: date
    on_time: bool
    days_late: int
    book_available: bool = True


class OverdueLoanItem(BaseModel):
    """Single overdue loan with urgency tier"""

    loan: LoanSchema
    book: BookRef
    borrower: BorrowerRef
    days_overdue: int
    urgency: UrgencyLevel


class OverdueSummary(BaseModel):
    total_overdue: int
    critical: int
    high: int


class OverdueResponse(BaseModel):
    """Response for GET /v1/loans/overdue"""

    loans: List[OverdueLoanItem]
    summary: OverdueSummary


class BookCreateRequest(BaseModel):
    """Request body for POST /v1/books"""

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    genre: Optional[str] = None
    isbn: Optional[str] = None


class BookResponse(BaseModel):
    """Response for book endpoints"""

    id: int
    title: str
    author: str
    genre: Optional[str] = None
    isbn: Optional[str] = None
    available: bool
    has_active_loan: bool = False


class BorrowerCreateRequest(BaseModel):
    """Request body for POST /v1/borrowers"""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = None


class BorrowerResponse(BaseModel):
    """Response for borrower endpoints"""

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    active_loans: int = 0
    overdue_loans: int = 0


class DashboardResponse(BaseModel):
    """Response for GET /v1/stats/dashboard"""

    total_books: int
    available_books: int
    total_borrowers: int
    active_loans: int
    overdue_loans: int


def loan_schema(loan: Loan) -> LoanSchema:
    return LoanSchema(
        id=loan.id,
        book_id=loan.book_id,
        borrower_id=loan.borrower_id,
        loan_date=loan.loan_date,
        due_date=loan.due_date,
        returned=loan.returned,
        returned_date=loan.returned_date,
    )


def book_ref(book: Book) -> BookRef:
    return BookRef(id=book.id, title=book.title, author=book.author, genre=book.genre)


def borrower_ref(borrower: Borrower) -> BorrowerRef:
    return BorrowerRef(id=borrower.id, name=borrower.name, email=borrower.email, phone=borrower.phone)


def loan_detail_response(detail: LoanDetail) -> LoanDetailResponse:
    return LoanDetailResponse(
        loan=loan_schema(detail.loan),
        book=book_ref(detail.book),
        borrower=borrower_ref(detail.borrower),
        status=detail.status,
        days_overdue=detail.days_overdue,
        days_remaining=detail.days_remaining,
        duration_days=detail.duration_days,
        days_elapsed=detail.days_elapsed,
    )
