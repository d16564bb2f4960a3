"""Loan endpoints - create, return, inspect and list loans"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from library_loans.api.v1.schemas import (
    LoanCreateRequest,
    LoanCreatedResponse,
    LoanDetailResponse,
    LoanListMetrics,
    LoanListResponse,
    OverdueLoanItem,
    OverdueResponse,
    OverdueSummary,
    ReturnResponse,
    book_ref,
    borrower_ref,
    loan_detail_response,
    loan_schema,
)
from library_loans.api.dependencies import get_loan_service, get_request_id
from library_loans.domain.exceptions import (
    InvalidDateRangeError,
    LoanLockTimeoutError,
    LoanRejectedError,
    NotFoundError,
    StorageError,
)
from library_loans.domain.models import LoanStatus, UrgencyLevel
from library_loans.infrastructure.observability.logging import log_loan_event
from library_loans.services.loans import LoanService

router = APIRouter()

BUSY_HEADERS = {"Retry-After": "1"}


@router.post("/loans", response_model=LoanCreatedResponse, status_code=201)
def create_loan(
    request_body: LoanCreateRequest,
    request: Request,
    service: LoanService = Depends(get_loan_service),
):
    """
    Lend a book.

    Flow:
    1. Validate dates and duration (before any lookup, so a bad date is a 422 even for unknown ids)
    2. Lock book and borrower, check availability, loan limit and overdue loans
    3. Persist loan and mark book unavailable (single transaction)
    """
    request_id = get_request_id(request)

    try:
        receipt = service.checkout(
            book_id=request_body.book_id,
            borrower_id=request_body.borrower_id,
            loan_date=request_body.loan_date,
            duration_days=request_body.duration_days,
        )

    except NotFoundError as e:
        logging.warning(f"Loan target missing: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except LoanRejectedError as e:
        log_loan_event(
            request_id,
            "rejected",
            book_id=request_body.book_id,
            borrower_id=request_body.borrower_id,
            reason=e.reason.value,
        )
        raise HTTPException(status_code=400, detail={"reason": e.reason.value, "message": str(e)})

    except InvalidDateRangeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except LoanLockTimeoutError as e:
        logging.warning(f"Lock timeout: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Book is busy, retry shortly", headers=BUSY_HEADERS)

    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    loan = receipt.loan
    log_loan_event(
        request_id,
        "created",
        loan_id=loan.id,
        book_id=loan.book_id,
        borrower_id=loan.borrower_id,
        due_date=loan.due_date.isoformat(),
    )

    return LoanCreatedResponse(
        loan=loan_schema(loan),
        due_date=loan.due_date,
        duration_days=service.policy.loan_duration(loan),
        borrower_active_loans=receipt.borrower_active_loans,
    )


@router.get("/loans", response_model=LoanListResponse)
def list_loans(
    returned: Optional[bool] = Query(None, description="Only returned / only active loans"),
    overdue: Optional[bool] = Query(None, description="Only overdue / only not overdue loans"),
    borrower_id: Optional[int] = Query(None),
    book_id: Optional[int] = Query(None),
    limit: int = Query(25, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: LoanService = Depends(get_loan_service),
):
    """List loans with derived status and page-level metrics"""
    details = service.list_loans(
        returned=returned,
        overdue=overdue,
        borrower_id=borrower_id,
        book_id=book_id,
        limit=limit,
        offset=offset,
    )

    metrics = LoanListMetrics(
        total=len(details),
        active=sum(1 for d in details if not d.loan.returned),
        overdue=sum(1 for d in details if d.status == LoanStatus.OVERDUE),
        critical=sum(1 for d in details if d.status == LoanStatus.CRITICAL_OVERDUE),
    )

    return LoanListResponse(loans=[loan_detail_response(d) for d in details], metrics=metrics)


@router.get("/loans/overdue", response_model=OverdueResponse)
def list_overdue_loans(service: LoanService = Depends(get_loan_service)):
    """
    Retrieve every overdue loan, oldest due date first.

    Returns:
        Loans annotated with days overdue and urgency tier, plus tier counts
    """
    overdue = service.list_overdue_loans()

    items = [
        OverdueLoanItem(
            loan=loan_schema(o.loan),
            book=book_ref(o.book),
            borrower=borrower_ref(o.borrower),
            days_overdue=o.days_overdue,
            urgency=o.urgency,
        )
        for o in overdue
    ]

    summary = OverdueSummary(
        total_overdue=len(items),
        critical=sum(1 for o in overdue if o.urgency == UrgencyLevel.CRITICAL),
        high=sum(1 for o in overdue if o.urgency == UrgencyLevel.HIGH),
    )

    return OverdueResponse(loans=items, summary=summary)


@router.get("/loans/{loan_id}", response_model=LoanDetailResponse)
def get_loan(loan_id: int, service: LoanService = Depends(get_loan_service)):
    """Loan with status, days overdue/remaining and duration"""
    try:
        detail = service.loan_status_report(loan_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")

    return loan_detail_response(detail)


@router.post("/loans/{loan_id}/return", response_model=ReturnResponse)
def return_loan(
    loan_id: int,
    request: Request,
    service: LoanService = Depends(get_loan_service),
):
    """
    Mark a loan as returned and release the book.

    A second return of the same loan is refused with 400, never ignored.
    """
    request_id = get_request_id(request)

    try:
        receipt = service.return_loan(loan_id)

    except NotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")

    except LoanRejectedError as e:
        log_loan_event(request_id, "rejected", loan_id=loan_id, reason=e.reason.value)
        raise HTTPException(status_code=400, detail={"reason": e.reason.value, "message": str(e)})

    except LoanLockTimeoutError as e:
        logging.warning(f"Lock timeout: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Loan is busy, retry shortly", headers=BUSY_HEADERS)

    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    log_loan_event(
        request_id,
        "returned",
        loan_id=receipt.loan.id,
        book_id=receipt.loan.book_id,
        borrower_id=receipt.loan.borrower_id,
        days_late=receipt.days_late,
    )

    return ReturnResponse(
        loan=loan_schema(receipt.loan),
        expected_return_date=receipt.loan.due_date,
        returned_date=receipt.loan.returned_date,
        on_time=receipt.on_time,
        days_late=receipt.days_late,
    )


@router.delete("/loans/{loan_id}", status_code=204)
def delete_loan(
    loan_id: int,
    request: Request,
    service: LoanService = Depends(get_loan_service),
):
    """Administrative removal; an active loan releases its book"""
    request_id = get_request_id(request)

    try:
        loan = service.delete_loan(loan_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")
    except LoanLockTimeoutError:
        raise HTTPException(status_code=503, detail="Loan is busy, retry shortly", headers=BUSY_HEADERS)

    log_loan_event(request_id, "deleted", loan_id=loan.id, book_id=loan.book_id, borrower_id=loan.borrower_id)
    return Response(status_code=204)
