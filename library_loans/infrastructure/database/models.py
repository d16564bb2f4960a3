"""SQLAlchemy ORM models for the catalog, borrower registry and loan ledger"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BookRow(Base):
    """Catalog entry; `available` is flipped only by the loan service"""

    __tablename__ = "book"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    author = Column(Text, nullable=False)
    genre = Column(Text, nullable=True)
    isbn = Column(Text, nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loans = relationship("LoanRow", back_populates="book", cascade="all, delete-orphan")


class BorrowerRow(Base):
    """Registered library user"""

    __tablename__ = "borrower"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    phone = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loans = relationship("LoanRow", back_populates="borrower", cascade="all, delete-orphan")


class LoanRow(Base):
    """Loan ledger entry; terminal once returned"""

    __tablename__ = "loan"
    __table_args__ = (
        CheckConstraint("due_date >= loan_date", name="ck_loan_due_after_start"),
        CheckConstraint(
            "(returned AND returned_date IS NOT NULL) OR (NOT returned AND returned_date IS NULL)",
            name="ck_loan_returned_date_matches_flag",
        ),
        # "Does this book have an active loan?"
        Index("ix_loan_book_returned", "book_id", "returned"),
        # "How many active loans does this borrower hold?"
        Index("ix_loan_borrower_returned", "borrower_id", "returned"),
        Index("ix_loan_returned_due_date", "returned", "due_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("book.id", ondelete="CASCADE"), nullable=False)
    borrower_id = Column(Integer, ForeignKey("borrower.id", ondelete="CASCADE"), nullable=False)
    loan_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    returned_date = Column(Date, nullable=True)
    returned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    book = relationship("BookRow", back_populates="loans")
    borrower = relationship("BorrowerRow", back_populates="loans")
