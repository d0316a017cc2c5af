from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from exceptions import PolicyConfigError, StoreQueryError
from library_settings import LibrarySettings
from logging_setup import get_logger
from models import EligibilityVerdict, LoanStatus, QueryErrorPolicy, money
from record_store import BORROWINGS, RecordStore

logger = get_logger("eligibility")

# Wrongly allowing a loan is worse than wrongly denying one: fail closed.
ON_QUERY_ERROR = QueryErrorPolicy.DENY_ON_ERROR

LIMIT_REACHED = "Member has reached borrowing limit"
LIMIT_CHECK_FAILED = "Error checking borrowing limit"
FEES_CHECK_FAILED = "Error checking late fees"

DEFAULT_FEE_THRESHOLD = Decimal("10.00")


def _denied_on_error(reason: str, error: StoreQueryError) -> EligibilityVerdict:
    if ON_QUERY_ERROR is not QueryErrorPolicy.DENY_ON_ERROR:
        raise error
    logger.error("%s | %s", reason, error)
    return EligibilityVerdict(allowed=False, reason=reason)


def can_member_borrow(store: RecordStore, member_id: str, account_id: str, limit: int) -> EligibilityVerdict:
    """
    Checks a member's active loan count against the borrowing limit.

    Returns:
        EligibilityVerdict: denied when active loans >= limit, with the
        current count and limit echoed either way. Denied with
        "Error checking borrowing limit" if the store cannot be read.

    Raises:
        PolicyConfigError: If limit is negative.
    """
    logger.info("can_member_borrow called | member_id=%s account_id=%s limit=%s", member_id, account_id, limit)

    if limit < 0:
        raise PolicyConfigError(f"borrowing limit cannot be negative (got {limit})")

    try:
        current = store.count(
            BORROWINGS,
            eq={"member_id": member_id, "account_id": account_id, "status": LoanStatus.BORROWED},
        )
    except StoreQueryError as e:
        return _denied_on_error(LIMIT_CHECK_FAILED, e)

    if current >= limit:
        logger.info("Borrowing limit reached | member_id=%s current=%d limit=%d", member_id, current, limit)
        return EligibilityVerdict(allowed=False, reason=LIMIT_REACHED, current=current, limit=limit)

    return EligibilityVerdict(allowed=True, current=current, limit=limit)


def check_unpaid_late_fees(
    store: RecordStore,
    member_id: str,
    account_id: str,
    threshold: Decimal = DEFAULT_FEE_THRESHOLD,
) -> EligibilityVerdict:
    """
    Sums the member's unpaid, unwaived late fees.

    Returns:
        EligibilityVerdict: denied only when the total is strictly greater
        than threshold. Denied with "Error checking late fees" if the store
        cannot be read.

    Raises:
        PolicyConfigError: If threshold is negative.
    """
    logger.info("check_unpaid_late_fees called | member_id=%s account_id=%s", member_id, account_id)

    threshold = money(threshold)
    if threshold < 0:
        raise PolicyConfigError(f"unpaid fee threshold cannot be negative (got {threshold})")

    try:
        rows = store.select(
            BORROWINGS,
            eq={
                "member_id": member_id,
                "account_id": account_id,
                "fee_paid": False,
                "fee_waived": False,
            },
        )
    except StoreQueryError as e:
        return _denied_on_error(FEES_CHECK_FAILED, e)

    total = money(sum((money(r.get("late_fee_amount") or 0) for r in rows), Decimal("0.00")))

    if total > threshold:
        logger.info("Unpaid late fees over threshold | member_id=%s total=%s threshold=%s", member_id, total, threshold)
        return EligibilityVerdict(allowed=False, reason=f"Member has unpaid late fees: ${total:.2f}")

    return EligibilityVerdict(allowed=True)


@dataclass(frozen=True)
class CheckoutEligibility:
    """
    Both gates evaluated for one checkout attempt.
    """
    borrowing_limit: EligibilityVerdict
    unpaid_fees: EligibilityVerdict

    @property
    def allowed(self) -> bool:
        return self.borrowing_limit.allowed and self.unpaid_fees.allowed

    @property
    def reasons(self) -> List[str]:
        out = []
        limit = self.borrowing_limit
        if not limit.allowed:
            if limit.current is not None:
                out.append(f"{limit.reason}. Currently borrowed: {limit.current}/{limit.limit}")
            else:
                out.append(limit.reason)
        if not self.unpaid_fees.allowed:
            out.append(self.unpaid_fees.reason)
        return out


def check_checkout_eligibility(
    store: RecordStore,
    member_id: str,
    account_id: str,
    settings: LibrarySettings,
) -> CheckoutEligibility:
    """
    Runs both gates with the account's limit and threshold. The caller
    decides whether to block the checkout.
    """
    result = CheckoutEligibility(
        borrowing_limit=can_member_borrow(store, member_id, account_id, settings.member_borrowing_limit),
        unpaid_fees=check_unpaid_late_fees(store, member_id, account_id, settings.unpaid_fee_threshold),
    )
    logger.info("Checkout eligibility | member_id=%s allowed=%s", member_id, result.allowed)
    return result
