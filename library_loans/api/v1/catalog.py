"""Book and borrower endpoints with ledger-backed deletion guards"""

from fastapi import APIRouter, Depends, HTTPException, Response

from library_loans.api.v1.schemas import (
    BookCreateRequest,
    BookResponse,
    BorrowerCreateRequest,
    BorrowerResponse,
)
from library_loans.api.dependencies import get_catalog_service, get_loan_service
from library_loans.domain.exceptions import ActiveLoansError, DuplicateEmailError, NotFoundError
from library_loans.services.catalog import CatalogService
from library_loans.services.loans import LoanService

router = APIRouter()


@router.post("/books", response_model=BookResponse, status_code=201)
def create_book(request_body: BookCreateRequest, catalog: CatalogService = Depends(get_catalog_service)):
    book = catalog.create_book(
        title=request_body.title,
        author=request_body.author,
        genre=request_body.genre,
        isbn=request_body.isbn,
    )
    return BookResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=book.genre,
        isbn=book.isbn,
        available=book.available,
    )


@router.get("/books/{book_id}", response_model=BookResponse)
def get_book(
    book_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
    loans: LoanService = Depends(get_loan_service),
):
    try:
        book = catalog.get_book(book_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Book not found")

    return BookResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=book.genre,
        isbn=book.isbn,
        available=book.available,
        has_active_loan=loans.book_has_active_loan(book.id),
    )


@router.delete("/books/{book_id}", status_code=204)
def delete_book(book_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    """Refused with 409 while the book is lent out"""
    try:
        catalog.delete_book(book_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Book not found")
    except ActiveLoansError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return Response(status_code=204)


@router.post("/borrowers", response_model=BorrowerResponse, status_code=201)
def create_borrower(
    request_body: BorrowerCreateRequest,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        borrower = catalog.create_borrower(
            name=request_body.name,
            email=request_body.email,
            phone=request_body.phone,
        )
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return BorrowerResponse(id=borrower.id, name=borrower.name, email=borrower.email, phone=borrower.phone)


@router.get("/borrowers/{borrower_id}", response_model=BorrowerResponse)
def get_borrower(
    borrower_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
    loans: LoanService = Depends(get_loan_service),
):
    """Borrower with active and overdue loan counts"""
    try:
        borrower = catalog.get_borrower(borrower_id)
        summary = loans.borrower_loan_summary(borrower_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Borrower not found")

    return BorrowerResponse(
        id=borrower.id,
        name=borrower.name,
        email=borrower.email,
        phone=borrower.phone,
        active_loans=summary.active_loans,
        overdue_loans=summary.overdue_loans,
    )


@router.delete("/borrowers/{borrower_id}", status_code=204)
def delete_borrower(borrower_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    """Refused with 409 while the borrower holds books"""
    try:
        catalog.delete_borrower(borrower_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Borrower not found")
    except ActiveLoansError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return Response(status_code=204)
