"""Unit tests for loan policy rules"""

import pytest
from datetime import date, timedelta
from library_loans.domain.exceptions import InvalidDateRangeError
from library_loans.domain.models import Book, Loan, LoanStatus, RejectionReason, UrgencyLevel
from library_loans.domain.policy import LoanPolicy, LoanPolicyConfig

TODAY = date(2025, 3, 10)


def make_loan(due_in_days: int, returned: bool = False, duration: int = 14) -> Loan:
    due_date = TODAY + timedelta(days=due_in_days)
    return Loan(
        id=1,
        book_id=1,
        borrower_id=1,
        loan_date=due_date - timedelta(days=duration),
        due_date=due_date,
        returned=returned,
        returned_date=TODAY if returned else None,
    )


@pytest.fixture
def policy() -> LoanPolicy:
    return LoanPolicy()


@pytest.fixture
def book() -> Book:
    return Book(id=7, title="Dune", author="Frank Herbert", genre="sci-fi", available=True)


def test_can_create_loan_allows_clean_request(policy: LoanPolicy, book: Book):
    """Available book, borrower under limit, nothing overdue"""
    eligibility = policy.can_create_loan(book, False, 2, False)

    assert eligibility.allowed is True
    assert eligibility.reason is None


def test_can_create_loan_rejects_book_with_active_loan(policy: LoanPolicy, book: Book):
    eligibility = policy.can_create_loan(book, True, 0, False)

    assert eligibility.allowed is False
    assert eligibility.reason == RejectionReason.BOOK_UNAVAILABLE


def test_can_create_loan_rejects_book_flagged_unavailable(policy: LoanPolicy, book: Book):
    book.available = False
    eligibility = policy.can_create_loan(book, False, 0, False)

    assert eligibility.reason == RejectionReason.BOOK_UNAVAILABLE


def test_can_create_loan_limit_boundary(policy: LoanPolicy, book: Book):
    """3 active loans blocks a 4th; 2 active loans allows a 3rd"""
    assert policy.can_create_loan(book, False, 2, False).allowed is True

    eligibility = policy.can_create_loan(book, False, 3, False)
    assert eligibility.allowed is False
    assert eligibility.reason == RejectionReason.LOAN_LIMIT_REACHED
    assert "3" in eligibility.message


def test_can_create_loan_rejects_overdue_borrower_under_limit(policy: LoanPolicy, book: Book):
    eligibility = policy.can_create_loan(book, False, 1, True)

    assert eligibility.allowed is False
    assert eligibility.reason == RejectionReason.BORROWER_HAS_OVERDUE_LOANS


def test_can_create_loan_reports_first_failure_in_priority_order(policy: LoanPolicy, book: Book):
    """Every rule failing at once reports book availability first"""
    assert policy.can_create_loan(book, True, 5, True).reason == RejectionReason.BOOK_UNAVAILABLE
    assert policy.can_create_loan(book, False, 5, True).reason == RejectionReason.LOAN_LIMIT_REACHED


def test_can_create_loan_respects_configured_limit(book: Book):
    policy = LoanPolicy(LoanPolicyConfig(max_active_loans=1))

    assert policy.can_create_loan(book, False, 0, False).allowed is True
    assert policy.can_create_loan(book, False, 1, False).reason == RejectionReason.LOAN_LIMIT_REACHED


def test_compute_due_date_defaults_to_today_plus_14(policy: LoanPolicy):
    assert policy.compute_due_date(TODAY) == TODAY + timedelta(days=14)


def test_compute_due_date_custom_start_and_duration(policy: LoanPolicy):
    start = TODAY + timedelta(days=3)
    assert policy.compute_due_date(TODAY, start, 30) == start + timedelta(days=30)
    assert policy.compute_due_date(TODAY, start, 1) == start + timedelta(days=1)


@pytest.mark.parametrize("duration", [0, 31, -5])
def test_compute_due_date_rejects_duration_out_of_range(policy: LoanPolicy, duration: int):
    with pytest.raises(InvalidDateRangeError):
        policy.compute_due_date(TODAY, None, duration)


def test_compute_due_date_rejects_past_loan_date(policy: LoanPolicy):
    with pytest.raises(InvalidDateRangeError):
        policy.compute_due_date(TODAY, TODAY - timedelta(days=1))


def test_resolve_loan_date(policy: LoanPolicy):
    assert policy.resolve_loan_date(TODAY) == TODAY
    assert policy.resolve_loan_date(TODAY, TODAY) == TODAY


@pytest.mark.parametrize(
    "due_in_days, expected",
    [
        (0, LoanStatus.DUE_SOON),  # due today
        (1, LoanStatus.DUE_SOON),  # due tomorrow
        (2, LoanStatus.DUE_SOON),
        (3, LoanStatus.ACTIVE),
        (14, LoanStatus.ACTIVE),
        (-1, LoanStatus.OVERDUE),
        (-3, LoanStatus.OVERDUE),  # still within grace
        (-4, LoanStatus.CRITICAL_OVERDUE),
        (-8, LoanStatus.CRITICAL_OVERDUE),
    ],
)
def test_derive_status_boundaries(policy: LoanPolicy, due_in_days: int, expected: LoanStatus):
    assert policy.derive_status(make_loan(due_in_days), TODAY) == expected


@pytest.mark.parametrize("due_in_days", [-30, -1, 0, 5])
def test_derive_status_returned_is_always_completed(policy: LoanPolicy, due_in_days: int):
    assert policy.derive_status(make_loan(due_in_days, returned=True), TODAY) == LoanStatus.COMPLETED


def test_derive_status_is_deterministic(policy: LoanPolicy):
    loan = make_loan(-2)
    assert {policy.derive_status(loan, TODAY) for _ in range(5)} == {LoanStatus.OVERDUE}


def test_derive_status_uses_configured_grace():
    """A 7-day grace keeps an 8-day-old loan critical but a 5-day-old one merely overdue"""
    policy = LoanPolicy(LoanPolicyConfig(grace_days=7))

    assert policy.derive_status(make_loan(-5), TODAY) == LoanStatus.OVERDUE
    assert policy.derive_status(make_loan(-8), TODAY) == LoanStatus.CRITICAL_OVERDUE


def test_days_overdue(policy: LoanPolicy):
    assert policy.days_overdue(make_loan(-8), TODAY) == 8
    assert policy.days_overdue(make_loan(0), TODAY) == 0
    assert policy.days_overdue(make_loan(5), TODAY) == 0
    assert policy.days_overdue(make_loan(-8, returned=True), TODAY) == 0


def test_days_remaining(policy: LoanPolicy):
    assert policy.days_remaining(make_loan(5), TODAY) == 5
    assert policy.days_remaining(make_loan(-2), TODAY) == -2
    assert policy.days_remaining(make_loan(5, returned=True), TODAY) is None


def test_days_late_and_duration(policy: LoanPolicy):
    late = make_loan(-4, returned=True, duration=10)
    on_time = make_loan(3, returned=True)

    assert policy.days_late(late) == 4
    assert policy.days_late(on_time) == 0
    assert policy.days_late(make_loan(-4)) == 0  # not returned yet
    assert policy.loan_duration(late) == 10


@pytest.mark.parametrize(
    "days, expected",
    [
        (1, UrgencyLevel.LOW),
        (2, UrgencyLevel.LOW),
        (3, UrgencyLevel.MEDIUM),
        (7, UrgencyLevel.MEDIUM),
        (8, UrgencyLevel.HIGH),
        (14, UrgencyLevel.HIGH),
        (15, UrgencyLevel.CRITICAL),
        (60, UrgencyLevel.CRITICAL),
    ],
)
def test_urgency_tiers(days: int, expected: UrgencyLevel):
    assert LoanPolicy.urgency_for(days) == expected
