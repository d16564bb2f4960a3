"""Catalog and borrower registry operations guarded by ledger state"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from library_loans.domain.exceptions import ActiveLoansError, DuplicateEmailError, NotFoundError
from library_loans.domain.models import Book, Borrower
from library_loans.infrastructure.database.repositories import (
    BookRepository,
    BorrowerRepository,
    LoanRepository,
    to_book,
    to_borrower,
)
from library_loans.services.transaction import TransactionalService


class CatalogService(TransactionalService):
    """Create, read and delete books and borrowers"""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.books = BookRepository(db)
        self.borrowers = BorrowerRepository(db)
        self.loans = LoanRepository(db)

    def create_book(
        self,
        title: str,
        author: str,
        genre: Optional[str] = None,
        isbn: Optional[str] = None,
    ) -> Book:
        with self._transaction():
            book = to_book(self.books.create_book(title=title, author=author, genre=genre, isbn=isbn))
        return book

    def get_book(self, book_id: int) -> Book:
        db_book = self.books.get_book(book_id)
        if db_book is None:
            raise NotFoundError("Book", book_id)
        return to_book(db_book)

    def delete_book(self, book_id: int) -> None:
        """
        Remove a book from the catalog.

        Raises:
            ActiveLoansError: The book is currently lent out
        """
        with self.locks.hold("book", book_id, self.lock_timeout):
            with self._transaction():
                db_book = self.books.get_book_for_update(book_id)
                if db_book is None:
                    raise NotFoundError("Book", book_id)

                active = self.loans.count_active_for_book(book_id)
                if active > 0:
                    raise ActiveLoansError("Book", book_id, active)

                self.books.delete_book(db_book)

    def create_borrower(self, name: str, email: str, phone: Optional[str] = None) -> Borrower:
        """
        Register a borrower.

        Raises:
            DuplicateEmailError: Email already belongs to another borrower
        """
        with self._transaction():
            if self.borrowers.get_by_email(email) is not None:
                raise DuplicateEmailError(f"Email {email} is already registered")
            try:
                borrower = to_borrower(self.borrowers.create_borrower(name=name, email=email, phone=phone))
            except IntegrityError as e:
                # Concurrent registration won the unique constraint
                raise DuplicateEmailError(f"Email {email} is already registered") from e
        return borrower

    def get_borrower(self, borrower_id: int) -> Borrower:
        db_borrower = self.borrowers.get_borrower(borrower_id)
        if db_borrower is None:
            raise NotFoundError("Borrower", borrower_id)
        return to_borrower(db_borrower)

    def delete_borrower(self, borrower_id: int) -> None:
        """
        Remove a borrower and their returned-loan history.

        Raises:
            ActiveLoansError: The borrower still holds books
        """
        with self.locks.hold("borrower", borrower_id, self.lock_timeout):
            with self._transaction():
                db_borrower = self.borrowers.get_borrower_for_update(borrower_id)
                if db_borrower is None:
                    raise NotFoundError("Borrower", borrower_id)

                active = self.loans.count_active_for_borrower(borrower_id)
                if active > 0:
                    raise ActiveLoansError("Borrower", borrower_id, active)

                self.borrowers.delete_borrower(db_borrower)
