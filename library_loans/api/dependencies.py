"""Dependency injection for FastAPI endpoints"""

from datetime import date
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from library_loans.config import settings
from library_loans.domain.policy import LoanPolicy, LoanPolicyConfig
from library_loans.infrastructure.database.session import get_db
from library_loans.services.catalog import CatalogService
from library_loans.services.loans import LoanService
from library_loans.utils.date_utils import today


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> Callable[[], date]:
    """Clock used for every date-dependent rule"""
    return today


def get_loan_policy() -> LoanPolicy:
    """Provide loan policy configured from settings"""
    return LoanPolicy(LoanPolicyConfig.from_settings(settings))


def get_loan_service(
    db: Session = Depends(get_db),
    policy: LoanPolicy = Depends(get_loan_policy),
    clock: Callable[[], date] = Depends(get_today),
) -> LoanService:
    """Provide loan service bound to the request's session"""
    return LoanService(db, policy=policy, today=clock)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)
