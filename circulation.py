from __future__ import annotations

from datetime import date

from borrowing_limits import can_member_borrow, check_checkout_eligibility, check_unpaid_late_fees
from duplicate_detection import check_duplicates
from exceptions import CirculationError
from late_fees import calculate_late_fee, format_late_fee, get_days_overdue, is_overdue, refresh_loan_fee
from library_settings import load_library_settings
from logging_setup import get_logger
from models import LoanRecord, LoanStatus
from record_store import BOOKS, BORROWINGS, LIBRARY_SETTINGS, InMemoryRecordStore

logger = get_logger("demo")

ACCOUNT = "acct-1"


def seed_store() -> InMemoryRecordStore:
    """
    Builds a small in-memory catalog with a few loans for member M1.
    """
    store = InMemoryRecordStore()

    for book_id, title, author, isbn in [
        ("b1", "Clean Code", "Robert C. Martin", "978-0-13-235088-4"),
        ("b2", "The Great Gatsby: A Novel", "F. Scott Fitzgerald", "978-0-7432-7356-5"),
        ("b3", "Refactoring", "Martin Fowler", "978-0-13-475759-9"),
        ("b4", "Design Patterns", "GoF", "978-0-201-63361-0"),
    ]:
        store.insert(BOOKS, {
            "id": book_id, "account_id": ACCOUNT, "title": title,
            "author": author, "isbn": isbn, "deleted_at": None,
        })

    store.insert(LIBRARY_SETTINGS, {
        "account_id": ACCOUNT,
        "daily_late_fee_rate": "0.50",
        "grace_period_days": 2,
        "max_late_fee_cap": "10.00",
        "member_borrowing_limit": 3,
    })

    for loan_id, due, status, fee in [
        ("L1", "2025-01-15", LoanStatus.BORROWED, "0.00"),
        ("L2", "2025-01-15", LoanStatus.BORROWED, "0.00"),
        ("L3", "2024-12-01", LoanStatus.RETURNED, "12.50"),
    ]:
        store.insert(BORROWINGS, {
            "id": loan_id, "member_id": "M1", "account_id": ACCOUNT,
            "due_date": due, "return_date": None, "status": status,
            "late_fee_amount": fee, "fee_paid": False, "fee_waived": False,
        })

    return store


# Main Program
def main() -> None:
    """
    Walks through each evaluator against a seeded store.

    Demonstrated scenarios:
        - exact ISBN duplicate
        - similar title duplicate
        - editing a record excludes it from its own duplicate check
        - late fee with grace period and cap
        - borrowing limit and unpaid fee gates
        - fail closed when the store is down
    """
    print("\n=== Circulation Policy Demo ===\n")

    store = seed_store()
    settings = load_library_settings(store, ACCOUNT)
    policy = settings.fee_policy

    print("Checking duplicates for a new copy of Clean Code...")
    verdict = check_duplicates(
        store,
        {"isbn": "978-0-13-235088-4", "title": "Clean Code", "author": "Robert Martin"},
        ACCOUNT,
    )
    print("  exact ISBN:", [r.title for r in verdict.exact_isbn_matches])
    print("  has duplicates:", verdict.has_duplicates)

    print("\nChecking duplicates for 'The Great Gatsby'...")
    verdict = check_duplicates(store, {"title": "The Great Gatsby"}, ACCOUNT)
    print("  similar title:", [r.title for r in verdict.similar_title_matches])

    print("\nEditing b2 itself (should not match itself)...")
    verdict = check_duplicates(store, {"title": "The Great Gatsby: A Novel"}, ACCOUNT, exclude_id="b2")
    print("  has duplicates:", verdict.has_duplicates)

    today = date(2025, 1, 25)
    print(f"\nLate fees as of {today} (rate {policy.daily_late_fee_rate}, grace {policy.grace_period_days}):")
    print("  days overdue:", get_days_overdue("2025-01-15", today), "| overdue:", is_overdue("2025-01-15", today))
    print("  fee:", format_late_fee(calculate_late_fee("2025-01-15", today, policy)))
    print("  fee after 60 days (capped):", format_late_fee(calculate_late_fee(date(2025, 1, 15), date(2025, 3, 16), policy)))

    loan = LoanRecord.from_row(store.select(BORROWINGS, eq={"id": "L1"})[0])
    print("  refreshed L1 fee:", format_late_fee(refresh_loan_fee(loan, policy, as_of=today).fee_amount))

    print("\nEligibility for M1:")
    print("  borrowing limit:", can_member_borrow(store, "M1", ACCOUNT, settings.member_borrowing_limit))
    print("  unpaid fees:", check_unpaid_late_fees(store, "M1", ACCOUNT, settings.unpaid_fee_threshold))

    eligibility = check_checkout_eligibility(store, "M1", ACCOUNT, settings)
    print("  checkout allowed:", eligibility.allowed, eligibility.reasons)

    print("\nStore goes down...")
    store.available = False
    print("  duplicates (advisory):", check_duplicates(store, {"title": "Clean Code"}, ACCOUNT).has_duplicates)
    print("  borrowing limit (fail closed):", can_member_borrow(store, "M1", ACCOUNT, 3))

    print("\n=== Demo Completed ===\n")


if __name__ == "__main__":
    try:
        main()
    except CirculationError as e:
        logger.error("CirculationError bubbled to top-level | %s", e)
        raise
    except Exception as e:
        logger.exception("Unhandled fatal error | %s", e)
        raise
