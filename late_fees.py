"""
Late fee calculation.

All functions are pure: the same inputs always give the same fee, so they
can be re-evaluated on every poll with a different "now".
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from logging_setup import get_logger
from models import DateLike, FeePolicy, LoanRecord, money

logger = get_logger("fees")

ZERO = Decimal("0.00")


def _to_datetime(value: DateLike, name: str) -> datetime:
    """
    Accepts a datetime, a date (taken as midnight) or an ISO-8601 string.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _to_datetime(datetime.fromisoformat(text), name)
        except ValueError:
            raise ValueError(f"{name} is not an ISO-8601 date: {value!r}")
    raise ValueError(f"{name} must be a date, datetime or ISO-8601 string")


def _now_for(due: datetime) -> datetime:
    # Same awareness as the due date, so the two can be subtracted.
    return datetime.now(due.tzinfo)


def _ceil_days(delta: timedelta) -> int:
    # timedelta keeps seconds/microseconds non-negative, so any remainder
    # pushes the day count up by one.
    if delta.seconds or delta.microseconds:
        return delta.days + 1
    return delta.days


def get_days_overdue(due_date: DateLike, now: Optional[DateLike] = None) -> int:
    """
    Signed number of days between due_date and now, rounded up.
    Negative means not yet due.
    """
    due = _to_datetime(due_date, "due_date")
    current = _now_for(due) if now is None else _to_datetime(now, "now")
    return _ceil_days(current - due)


def is_overdue(due_date: DateLike, now: Optional[DateLike] = None) -> bool:
    return get_days_overdue(due_date, now) > 0


def calculate_late_fee(due_date: DateLike, return_date: DateLike, policy: FeePolicy) -> Decimal:
    """
    Calculates the late fee for one loan.

    Fee rule:
        chargeable days = days overdue - grace period
        fee = chargeable days * daily rate, capped when the cap is positive

    Returns:
        Decimal: Fee rounded half-up to cents, never negative.
    """
    days_overdue = get_days_overdue(due_date, return_date)
    if days_overdue <= 0:
        return ZERO

    chargeable_days = max(0, days_overdue - policy.grace_period_days)
    if chargeable_days <= 0:
        return ZERO

    fee = chargeable_days * policy.daily_late_fee_rate
    if policy.is_capped:
        fee = min(fee, policy.max_late_fee_cap)

    return money(fee)


def assess_loan_fee(loan: LoanRecord, policy: FeePolicy, as_of: Optional[DateLike] = None) -> Decimal:
    """
    Fee owed on a loan: measured to its return date, or to `as_of`
    (default now) while it is still out.
    """
    end = loan.return_date
    if end is None:
        end = _now_for(_to_datetime(loan.due_date, "due_date")) if as_of is None else as_of
    return calculate_late_fee(loan.due_date, end, policy)


def refresh_loan_fee(loan: LoanRecord, policy: FeePolicy, as_of: Optional[DateLike] = None) -> LoanRecord:
    """
    Returns a copy of the loan with fee_amount recomputed. The caller
    persists it if it wants to.
    """
    fee = assess_loan_fee(loan, policy, as_of)
    if fee != loan.fee_amount:
        logger.info(
            "Late fee changed | loan_id=%s member_id=%s old=%s new=%s",
            loan.id, loan.member_id, loan.fee_amount, fee,
        )
    return replace(loan, fee_amount=fee)


def format_late_fee(amount: Any) -> str:
    return f"${money(amount):.2f}"
