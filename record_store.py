from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from exceptions import StoreQueryError

BOOKS = "books"
BORROWINGS = "borrowings"
LIBRARY_SETTINGS = "library_settings"


class RecordStore(ABC):
    """
    Read-only query capability over the record store.

    Filters:
        eq: column -> value, exact equality.
        ilike: column -> text, case-insensitive substring containment.
        is_null: columns that must be unset (e.g. "deleted_at").
        limit: maximum number of rows returned.

    Implementations raise StoreQueryError for any failure.
    """

    @abstractmethod
    def select(
        self,
        table: str,
        eq: Optional[Mapping[str, Any]] = None,
        ilike: Optional[Mapping[str, str]] = None,
        is_null: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def count(
        self,
        table: str,
        eq: Optional[Mapping[str, Any]] = None,
        ilike: Optional[Mapping[str, str]] = None,
        is_null: Sequence[str] = (),
    ) -> int:
        ...


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store used by the demo and the tests.

    Rows are returned in insertion order. Set `available = False` to make
    every query fail as if the backend were unreachable.
    """

    def __init__(self, tables: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            BOOKS: [],
            BORROWINGS: [],
            LIBRARY_SETTINGS: [],
        }
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(r) for r in rows]
        self.available = True
        self.queries = 0
        self._lock = threading.Lock()

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        self.tables.setdefault(table, []).append(dict(row))

    def select(self, table, eq=None, ilike=None, is_null=(), limit=None):
        if limit is not None and limit < 0:
            raise StoreQueryError(f"limit cannot be negative (got {limit})")
        rows = self._matching(table, eq, ilike, is_null)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def count(self, table, eq=None, ilike=None, is_null=()):
        return len(self._matching(table, eq, ilike, is_null))

    # Internal Helpers
    def _matching(self, table, eq, ilike, is_null) -> List[Dict[str, Any]]:
        with self._lock:
            self.queries += 1
        if not self.available:
            raise StoreQueryError("record store is unavailable")
        if table not in self.tables:
            raise StoreQueryError(f"Unknown table: {table}")

        rows = self.tables[table]
        eq = dict(eq or {})
        ilike = dict(ilike or {})
        self._require_columns(table, rows, list(eq) + list(ilike))

        out = []
        for row in rows:
            if any(row.get(col) != val for col, val in eq.items()):
                continue
            if any(
                str(text).lower() not in str(row.get(col) or "").lower()
                for col, text in ilike.items()
            ):
                continue
            if any(row.get(col) is not None for col in is_null):
                continue
            out.append(row)
        return out

    @staticmethod
    def _require_columns(table: str, rows: List[Dict[str, Any]], columns: List[str]) -> None:
        """
        Rejects filters on columns no row has, like a malformed predicate
        would be rejected by a real database.
        """
        if not rows:
            return
        known = set().union(*(r.keys() for r in rows))
        unknown = [c for c in columns if c not in known]
        if unknown:
            raise StoreQueryError(f"Unknown column(s) on {table}: {', '.join(unknown)}")
