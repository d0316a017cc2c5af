from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from exceptions import PolicyConfigError
from logging_setup import get_logger
from models import FeePolicy, money
from record_store import LIBRARY_SETTINGS, RecordStore

logger = get_logger("settings")

ENV_PREFIX = "CIRCULATION_"


@dataclass(frozen=True)
class LibrarySettings:
    """
    Per-account circulation policy.

    Defaults apply when an account has never saved its settings:
        - $0.50 per day, no grace period, $10.00 cap
        - 5 active loans per member
        - checkout blocked above $10.00 of unpaid fees
        - 2 renewals per loan

    Raises:
        PolicyConfigError: For negative limits or thresholds.
    """

    DEFAULT_BORROWING_LIMIT = 5
    DEFAULT_UNPAID_FEE_THRESHOLD = Decimal("10.00")
    DEFAULT_MAX_RENEWALS = 2

    fee_policy: FeePolicy = field(default_factory=FeePolicy)
    member_borrowing_limit: int = DEFAULT_BORROWING_LIMIT
    unpaid_fee_threshold: Decimal = DEFAULT_UNPAID_FEE_THRESHOLD
    max_renewals_per_loan: int = DEFAULT_MAX_RENEWALS

    def __post_init__(self) -> None:
        limit = _whole_number(self.member_borrowing_limit, "member_borrowing_limit")
        renewals = _whole_number(self.max_renewals_per_loan, "max_renewals_per_loan")
        try:
            threshold = money(self.unpaid_fee_threshold)
        except ArithmeticError:
            raise PolicyConfigError(
                f"unpaid_fee_threshold must be numeric (got {self.unpaid_fee_threshold!r})"
            )
        if threshold < 0:
            raise PolicyConfigError(f"unpaid_fee_threshold cannot be negative (got {threshold})")

        object.__setattr__(self, "member_borrowing_limit", limit)
        object.__setattr__(self, "max_renewals_per_loan", renewals)
        object.__setattr__(self, "unpaid_fee_threshold", threshold)

    @classmethod
    def from_mapping(cls, row: Optional[Mapping[str, Any]]) -> "LibrarySettings":
        """
        Builds settings from a library_settings row. Missing or null
        columns fall back to the defaults.
        """
        row = row or {}
        defaults = FeePolicy()

        def pick(key: str, default: Any) -> Any:
            value = row.get(key)
            return default if value is None else value

        return cls(
            fee_policy=FeePolicy(
                daily_late_fee_rate=pick("daily_late_fee_rate", defaults.daily_late_fee_rate),
                grace_period_days=pick("grace_period_days", defaults.grace_period_days),
                max_late_fee_cap=pick("max_late_fee_cap", defaults.max_late_fee_cap),
            ),
            member_borrowing_limit=pick("member_borrowing_limit", cls.DEFAULT_BORROWING_LIMIT),
            unpaid_fee_threshold=pick("unpaid_fee_threshold", cls.DEFAULT_UNPAID_FEE_THRESHOLD),
            max_renewals_per_loan=pick("max_renewals_per_loan", cls.DEFAULT_MAX_RENEWALS),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LibrarySettings":
        """
        Reads CIRCULATION_DAILY_LATE_FEE_RATE, CIRCULATION_GRACE_PERIOD_DAYS,
        CIRCULATION_MAX_LATE_FEE_CAP, CIRCULATION_BORROWING_LIMIT,
        CIRCULATION_UNPAID_FEE_THRESHOLD and CIRCULATION_MAX_RENEWALS_PER_LOAN;
        unset variables keep defaults.
        """
        env = os.environ if environ is None else environ
        keys = {
            "daily_late_fee_rate": "DAILY_LATE_FEE_RATE",
            "grace_period_days": "GRACE_PERIOD_DAYS",
            "max_late_fee_cap": "MAX_LATE_FEE_CAP",
            "member_borrowing_limit": "BORROWING_LIMIT",
            "unpaid_fee_threshold": "UNPAID_FEE_THRESHOLD",
            "max_renewals_per_loan": "MAX_RENEWALS_PER_LOAN",
        }
        row = {
            column: env[ENV_PREFIX + suffix]
            for column, suffix in keys.items()
            if env.get(ENV_PREFIX + suffix, "").strip()
        }
        return cls.from_mapping(row)


def _whole_number(value: Any, name: str) -> int:
    try:
        number = Decimal(str(value))
    except ArithmeticError:
        raise PolicyConfigError(f"{name} must be numeric (got {value!r})")
    if number < 0 or number != number.to_integral_value():
        raise PolicyConfigError(f"{name} must be a non-negative whole number (got {value!r})")
    return int(number)


def load_library_settings(store: RecordStore, account_id: str) -> LibrarySettings:
    """
    Reads an account's settings row, or the defaults when it has none.

    Raises:
        StoreQueryError: If the store cannot be read.
        PolicyConfigError: If the stored values are invalid.
    """
    rows = store.select(LIBRARY_SETTINGS, eq={"account_id": account_id}, limit=1)
    if not rows:
        logger.info("No library settings saved, using defaults | account_id=%s", account_id)
        return LibrarySettings()

    settings = LibrarySettings.from_mapping(rows[0])
    logger.info(
        "Library settings loaded | account_id=%s rate=%s grace=%d cap=%s limit=%d",
        account_id,
        settings.fee_policy.daily_late_fee_rate,
        settings.fee_policy.grace_period_days,
        settings.fee_policy.max_late_fee_cap,
        settings.member_borrowing_limit,
    )
    return settings
