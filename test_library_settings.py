import pytest
from decimal import Decimal

from exceptions import PolicyConfigError, StoreQueryError
from library_settings import LibrarySettings, load_library_settings
from record_store import LIBRARY_SETTINGS, InMemoryRecordStore


def test_defaults():
    s = LibrarySettings()
    assert s.fee_policy.daily_late_fee_rate == Decimal("0.50")
    assert s.fee_policy.grace_period_days == 0
    assert s.fee_policy.max_late_fee_cap == Decimal("10.00")
    assert s.member_borrowing_limit == 5
    assert s.unpaid_fee_threshold == Decimal("10.00")
    assert s.max_renewals_per_loan == 2


def test_from_mapping_fills_missing_and_null_columns():
    s = LibrarySettings.from_mapping({"daily_late_fee_rate": 1.25, "grace_period_days": None, "member_borrowing_limit": "3"})
    assert s.fee_policy.daily_late_fee_rate == Decimal("1.25")
    assert s.fee_policy.grace_period_days == 0
    assert s.member_borrowing_limit == 3


@pytest.mark.parametrize(
    "row",
    [
        {"daily_late_fee_rate": -0.5},
        {"max_late_fee_cap": -10},
        {"grace_period_days": -2},
        {"member_borrowing_limit": -1},
        {"member_borrowing_limit": 2.5},
        {"unpaid_fee_threshold": "-0.01"},
        {"unpaid_fee_threshold": "lots"},
    ],
)
def test_invalid_values_rejected_at_load(row):
    with pytest.raises(PolicyConfigError):
        LibrarySettings.from_mapping(row)


def test_from_env_overrides_defaults():
    env = {
        "CIRCULATION_DAILY_LATE_FEE_RATE": "0.25",
        "CIRCULATION_GRACE_PERIOD_DAYS": "3",
        "CIRCULATION_BORROWING_LIMIT": "7",
        "CIRCULATION_MAX_LATE_FEE_CAP": "",
        "UNRELATED": "x",
    }
    s = LibrarySettings.from_env(env)
    assert s.fee_policy.daily_late_fee_rate == Decimal("0.25")
    assert s.fee_policy.grace_period_days == 3
    assert s.fee_policy.max_late_fee_cap == Decimal("10.00")
    assert s.member_borrowing_limit == 7


def test_from_env_reads_os_environ(monkeypatch):
    monkeypatch.setenv("CIRCULATION_UNPAID_FEE_THRESHOLD", "15")
    assert LibrarySettings.from_env().unpaid_fee_threshold == Decimal("15.00")


def test_load_uses_defaults_when_account_has_no_row():
    store = InMemoryRecordStore()
    store.insert(LIBRARY_SETTINGS, {"account_id": "other", "member_borrowing_limit": 1})
    assert load_library_settings(store, "A1") == LibrarySettings()


def test_load_reads_account_row():
    store = InMemoryRecordStore()
    store.insert(LIBRARY_SETTINGS, {
        "account_id": "A1",
        "daily_late_fee_rate": "0.75",
        "grace_period_days": 2,
        "max_late_fee_cap": "0",
        "member_borrowing_limit": 4,
    })
    s = load_library_settings(store, "A1")
    assert s.fee_policy.daily_late_fee_rate == Decimal("0.75")
    assert s.fee_policy.is_capped is False
    assert s.member_borrowing_limit == 4


def test_load_propagates_store_errors():
    store = InMemoryRecordStore()
    store.available = False
    with pytest.raises(StoreQueryError):
        load_library_settings(store, "A1")


def test_max_renewals_round_trips_from_row():
    s = LibrarySettings.from_mapping({"max_renewals_per_loan": "4"})
    assert s.max_renewals_per_loan == 4
    with pytest.raises(PolicyConfigError):
        LibrarySettings.from_mapping({"max_renewals_per_loan": -1})
