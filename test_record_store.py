import pytest

from exceptions import StoreQueryError
from record_store import BOOKS, InMemoryRecordStore


@pytest.fixture
def store():
    s = InMemoryRecordStore()
    s.insert(BOOKS, {"id": "1", "title": "Clean Code", "author": "Robert C. Martin", "deleted_at": None})
    s.insert(BOOKS, {"id": "2", "title": "Clean Architecture", "author": "Robert C. Martin", "deleted_at": None})
    s.insert(BOOKS, {"id": "3", "title": "Clean Code", "author": "Robert C. Martin", "deleted_at": "2025-01-01"})
    return s


def test_ilike_is_case_insensitive_substring(store):
    rows = store.select(BOOKS, ilike={"title": "CLEAN"})
    assert [r["id"] for r in rows] == ["1", "2", "3"]


def test_is_null_filter_drops_soft_deleted(store):
    rows = store.select(BOOKS, eq={"title": "Clean Code"}, is_null=("deleted_at",))
    assert [r["id"] for r in rows] == ["1"]


def test_limit_and_count(store):
    assert len(store.select(BOOKS, ilike={"title": "clean"}, limit=2)) == 2
    assert store.count(BOOKS, ilike={"author": "martin"}) == 3


def test_select_returns_copies(store):
    store.select(BOOKS)[0]["title"] = "changed"
    assert store.select(BOOKS)[0]["title"] == "Clean Code"


def test_unknown_table_raises(store):
    with pytest.raises(StoreQueryError):
        store.select("nope")


def test_unknown_column_raises(store):
    with pytest.raises(StoreQueryError):
        store.count(BOOKS, eq={"colour": "red"})


def test_unavailable_store_raises(store):
    store.available = False
    with pytest.raises(StoreQueryError):
        store.select(BOOKS)
