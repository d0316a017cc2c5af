from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from exceptions import PolicyConfigError

MONEY_Q = Decimal("0.01")

DateLike = Union[date, datetime, str]


def money(x: Any) -> Decimal:
    """
    Converts a number to a Decimal rounded half-up to cents.
    Floats go through str() so 0.1 stays 0.1.
    """
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PolicyConfigError(f"{name} must be numeric (got {value!r})")


class QueryErrorPolicy(Enum):
    """
    What an evaluator does when a record-store query fails.

    ADVISORY_ON_ERROR: treat the failed query as "no results" and carry on.
    DENY_ON_ERROR: fail closed and deny the requested action.
    """
    ADVISORY_ON_ERROR = "advisory_on_error"
    DENY_ON_ERROR = "deny_on_error"


class LoanStatus(str, Enum):
    """
    Loan lifecycle. Borrowed -> Returned (terminal). Compares equal to the
    plain strings the store keeps.
    """
    BORROWED = "Borrowed"
    RETURNED = "Returned"


# Domain Models
@dataclass(frozen=True)
class CatalogRecord:
    """
    A book row owned by the record store.

    Attributes:
        id (str): Record id.
        title (str): Book title.
        author (str): Author name.
        isbn (str): ISBN as stored (may be empty).
        deleted_at (Optional[str]): Soft-delete marker; set rows never match.
        extra (Dict[str, Any]): Any remaining columns (publisher, stock, ...).
    """
    id: str
    title: str = ""
    author: str = ""
    isbn: str = ""
    deleted_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    _KNOWN = ("id", "title", "author", "isbn", "deleted_at")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CatalogRecord":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            author=row.get("author") or "",
            isbn=row.get("isbn") or "",
            deleted_at=row.get("deleted_at"),
            extra={k: v for k, v in row.items() if k not in cls._KNOWN},
        )


@dataclass
class DuplicateVerdict:
    """
    Potential duplicates of a candidate book, split by confidence tier.

    A record id appears in at most one tier; the earliest tier wins
    (exact ISBN > similar title > title and author).
    """
    exact_isbn_matches: List[CatalogRecord] = field(default_factory=list)
    similar_title_matches: List[CatalogRecord] = field(default_factory=list)
    title_and_author_matches: List[CatalogRecord] = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return bool(
            self.exact_isbn_matches
            or self.similar_title_matches
            or self.title_and_author_matches
        )

    def all_ids(self) -> List[str]:
        return [
            r.id
            for tier in (
                self.exact_isbn_matches,
                self.similar_title_matches,
                self.title_and_author_matches,
            )
            for r in tier
        ]


@dataclass(frozen=True)
class LoanRecord:
    """
    One borrowing of one book by one member.

    fee_amount is whatever was last persisted; the fee calculator produces
    new values but never writes them back.
    """
    member_id: str
    account_id: str
    due_date: DateLike
    return_date: Optional[DateLike] = None
    fee_amount: Decimal = Decimal("0.00")
    fee_paid: bool = False
    fee_waived: bool = False
    status: LoanStatus = LoanStatus.BORROWED
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LoanRecord":
        return cls(
            id=row.get("id"),
            member_id=row["member_id"],
            account_id=row["account_id"],
            due_date=row["due_date"],
            return_date=row.get("return_date"),
            fee_amount=money(row.get("late_fee_amount") or 0),
            fee_paid=bool(row.get("fee_paid", False)),
            fee_waived=bool(row.get("fee_waived", False)),
            status=LoanStatus(row.get("status") or LoanStatus.BORROWED),
        )

    def is_active(self) -> bool:
        return self.status == LoanStatus.BORROWED

    @property
    def outstanding_fee(self) -> Decimal:
        if self.fee_paid or self.fee_waived:
            return Decimal("0.00")
        return money(self.fee_amount)


@dataclass(frozen=True)
class FeePolicy:
    """
    Late fee policy for one account.

    Attributes:
        daily_late_fee_rate (Decimal): Fee per chargeable day.
        grace_period_days (int): Overdue days that accrue no fee.
        max_late_fee_cap (Decimal): Upper bound per loan; 0 means uncapped.

    Raises:
        PolicyConfigError: If any value is negative or not numeric.
    """
    daily_late_fee_rate: Decimal = Decimal("0.50")
    grace_period_days: int = 0
    max_late_fee_cap: Decimal = Decimal("10.00")

    def __post_init__(self) -> None:
        rate = _to_decimal(self.daily_late_fee_rate, "daily_late_fee_rate")
        cap = _to_decimal(self.max_late_fee_cap, "max_late_fee_cap")
        grace = _to_decimal(self.grace_period_days, "grace_period_days")

        if rate < 0:
            raise PolicyConfigError(f"daily_late_fee_rate cannot be negative (got {rate})")
        if cap < 0:
            raise PolicyConfigError(f"max_late_fee_cap cannot be negative (got {cap})")
        if grace < 0 or grace != grace.to_integral_value():
            raise PolicyConfigError(
                f"grace_period_days must be a non-negative whole number (got {grace})"
            )

        object.__setattr__(self, "daily_late_fee_rate", rate)
        object.__setattr__(self, "max_late_fee_cap", cap)
        object.__setattr__(self, "grace_period_days", int(grace))

    @property
    def is_capped(self) -> bool:
        return self.max_late_fee_cap > 0


@dataclass(frozen=True)
class EligibilityVerdict:
    """
    Outcome of one eligibility gate. Never persisted.

    Attributes:
        allowed (bool): Whether the gate lets a new loan through.
        reason (Optional[str]): Human-readable denial reason.
        current (Optional[int]): Current active loan count, when known.
        limit (Optional[int]): The limit that was applied, when relevant.
    """
    allowed: bool
    reason: Optional[str] = None
    current: Optional[int] = None
    limit: Optional[int] = None
