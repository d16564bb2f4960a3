"""GET /v1/stats/dashboard - Library-wide loan counters"""

from fastapi import APIRouter, Depends

from library_loans.api.v1.schemas import DashboardResponse
from library_loans.api.dependencies import get_loan_service
from library_loans.services.loans import LoanService

router = APIRouter()


@router.get("/stats/dashboard", response_model=DashboardResponse)
def get_dashboard(service: LoanService = Depends(get_loan_service)):
    """
    Totals for the dashboard.

    Returns:
        Book, borrower, active-loan and overdue-loan counts
    """
    stats = service.library_stats()
    return DashboardResponse(
        total_books=stats.total_books,
        available_books=stats.available_books,
        total_borrowers=stats.total_borrowers,
        active_loans=stats.active_loans,
        overdue_loans=stats.overdue_loans,
    )
