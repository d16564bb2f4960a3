"""Data access layer for the catalog, borrower registry and loan ledger"""

from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from library_loans.infrastructure.database.models import BookRow, BorrowerRow, LoanRow
from library_loans.domain.models import Book, Borrower, Loan


class BookRepository:
    """Repository for catalog entries"""

    def __init__(self, db: Session):
        self.db = db

    def create_book(
        self,
        title: str,
        author: str,
        genre: Optional[str] = None,
        isbn: Optional[str] = None,
    ) -> BookRow:
        db_book = BookRow(title=title, author=author, genre=genre, isbn=isbn, available=True)
        self.db.add(db_book)
        self.db.flush()  # Get ID without committing
        return db_book

    def get_book(self, book_id: int) -> Optional[BookRow]:
        return self.db.query(BookRow).filter(BookRow.id == book_id).first()

    def get_book_for_update(self, book_id: int) -> Optional[BookRow]:
        """Fetch book holding a row-level write lock until commit/rollback"""
        return (
            self.db.query(BookRow)
            .filter(BookRow.id == book_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def set_available(self, db_book: BookRow, available: bool) -> None:
        db_book.available = available
        self.db.flush()

    def delete_book(self, db_book: BookRow) -> None:
        self.db.delete(db_book)
        self.db.flush()

    def count_books(self, available_only: bool = False) -> int:
        query = self.db.query(BookRow)
        if available_only:
            query = query.filter(BookRow.available.is_(True))
        return query.count()


class BorrowerRepository:
    """Repository for library users"""

    def __init__(self, db: Session):
        self.db = db

    def create_borrower(self, name: str, email: str, phone: Optional[str] = None) -> BorrowerRow:
        db_borrower = BorrowerRow(name=name, email=email, phone=phone)
        self.db.add(db_borrower)
        self.db.flush()
        return db_borrower

    def get_borrower(self, borrower_id: int) -> Optional[BorrowerRow]:
        return self.db.query(BorrowerRow).filter(BorrowerRow.id == borrower_id).first()

    def get_borrower_for_update(self, borrower_id: int) -> Optional[BorrowerRow]:
        return (
            self.db.query(BorrowerRow)
            .filter(BorrowerRow.id == borrower_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_email(self, email: str) -> Optional[BorrowerRow]:
        return self.db.query(BorrowerRow).filter(BorrowerRow.email == email).first()

    def delete_borrower(self, db_borrower: BorrowerRow) -> None:
        self.db.delete(db_borrower)
        self.db.flush()

    def count_borrowers(self) -> int:
        return self.db.query(BorrowerRow).count()


class LoanRepository:
    """Repository for the loan ledger"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        book_id: int,
        borrower_id: int,
        loan_date: date,
        due_date: date,
    ) -> LoanRow:
        """Insert an active loan"""
        db_loan = LoanRow(
            book_id=book_id,
            borrower_id=borrower_id,
            loan_date=loan_date,
            due_date=due_date,
            returned=False,
            returned_date=None,
        )
        self.db.add(db_loan)
        self.db.flush()
        return db_loan

    def get_loan(self, loan_id: int) -> Optional[LoanRow]:
        """Fetch loan with its book and borrower"""
        return (
            self.db.query(LoanRow)
            .options(joinedload(LoanRow.book), joinedload(LoanRow.borrower))
            .filter(LoanRow.id == loan_id)
            .first()
        )

    def get_loan_for_update(self, loan_id: int) -> Optional[LoanRow]:
        return (
            self.db.query(LoanRow)
            .filter(LoanRow.id == loan_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def mark_returned(self, db_loan: LoanRow, returned_date: date) -> LoanRow:
        """Close the loan; both terminal fields are written together"""
        db_loan.returned = True
        db_loan.returned_date = returned_date
        self.db.flush()
        return db_loan

    def delete_loan(self, db_loan: LoanRow) -> None:
        self.db.delete(db_loan)
        self.db.flush()

    def count_active_for_book(self, book_id: int) -> int:
        return (
            self.db.query(LoanRow)
            .filter(LoanRow.book_id == book_id, LoanRow.returned.is_(False))
            .count()
        )

    def count_active_for_borrower(self, borrower_id: int) -> int:
        return (
            self.db.query(LoanRow)
            .filter(LoanRow.borrower_id == borrower_id, LoanRow.returned.is_(False))
            .count()
        )

    def count_overdue_for_borrower(self, borrower_id: int, today: date) -> int:
        return (
            self.db.query(LoanRow)
            .filter(
                LoanRow.borrower_id == borrower_id,
                LoanRow.returned.is_(False),
                LoanRow.due_date < today,
            )
            .count()
        )

    def count_active(self) -> int:
        return self.db.query(LoanRow).filter(LoanRow.returned.is_(False)).count()

    def count_overdue(self, today: date) -> int:
        return (
            self.db.query(LoanRow)
            .filter(LoanRow.returned.is_(False), LoanRow.due_date < today)
            .count()
        )

    def list_overdue(self, today: date) -> List[LoanRow]:
        """Active loans past due, oldest due date first"""
        return (
            self.db.query(LoanRow)
            .options(joinedload(LoanRow.book), joinedload(LoanRow.borrower))
            .filter(LoanRow.returned.is_(False), LoanRow.due_date < today)
            .order_by(LoanRow.due_date.asc(), LoanRow.id.asc())
            .all()
        )

    def list_loans(
        self,
        today: date,
        returned: Optional[bool] = None,
        overdue: Optional[bool] = None,
        borrower_id: Optional[int] = None,
        book_id: Optional[int] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> List[LoanRow]:
        """Filtered ledger listing, newest first"""
        query = self.db.query(LoanRow).options(
            joinedload(LoanRow.book), joinedload(LoanRow.borrower)
        )

        if returned is not None:
            query = query.filter(LoanRow.returned.is_(returned))

        if overdue is True:
            query = query.filter(LoanRow.returned.is_(False), LoanRow.due_date < today)
        elif overdue is False:
            query = query.filter((LoanRow.returned.is_(True)) | (LoanRow.due_date >= today))

        if borrower_id is not None:
            query = query.filter(LoanRow.borrower_id == borrower_id)

        if book_id is not None:
            query = query.filter(LoanRow.book_id == book_id)

        return (
            query.order_by(LoanRow.created_at.desc(), LoanRow.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_all(self) -> List[LoanRow]:
        return self.db.query(LoanRow).order_by(LoanRow.id.asc()).all()


def to_book(db_book: BookRow) -> Book:
    return Book(
        id=db_book.id,
        title=db_book.title,
        author=db_book.author,
        genre=db_book.genre,
        available=db_book.available,
        isbn=db_book.isbn,
    )


def to_borrower(db_borrower: BorrowerRow) -> Borrower:
    return Borrower(
        id=db_borrower.id,
        name=db_borrower.name,
        email=db_borrower.email,
        phone=db_borrower.phone,
    )


def to_loan(db_loan: LoanRow) -> Loan:
    return Loan(
        id=db_loan.id,
        book_id=db_loan.book_id,
        borrower_id=db_loan.borrower_id,
        loan_date=db_loan.loan_date,
        due_date=db_loan.due_date,
        returned=db_loan.returned,
        returned_date=db_loan.returned_date,
    )
