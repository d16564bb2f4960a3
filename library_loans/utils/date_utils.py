"""Date manipulation utilities"""

from datetime import date, timedelta


def today() -> date:
    """Current calendar day; loans are day-granular so no time component"""
    return date.today()


def days_between(start: date, end: date) -> int:
    """Signed number of whole days from start to end"""
    return (end - start).days


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)
