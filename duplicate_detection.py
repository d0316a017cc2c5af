from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping, Optional

from exceptions import StoreQueryError
from logging_setup import get_logger
from models import CatalogRecord, DuplicateVerdict, QueryErrorPolicy
from record_store import BOOKS, RecordStore
from similarity import title_similarity

logger = get_logger("duplicates")

# Duplicate detection is advisory: a failed tier query counts as "no matches".
ON_QUERY_ERROR = QueryErrorPolicy.ADVISORY_ON_ERROR

SIMILAR_TITLE_THRESHOLD = 0.6
TIER_QUERY_LIMIT = 10


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _run_tier(name: str, query: Callable[[], List[dict]]) -> List[dict]:
    try:
        return query()
    except StoreQueryError as e:
        if ON_QUERY_ERROR is not QueryErrorPolicy.ADVISORY_ON_ERROR:
            raise
        logger.warning("Duplicate tier query failed, treating as no matches | tier=%s error=%s", name, e)
        return []


def _exact_isbn_rows(store: RecordStore, isbn: str, account_id: str) -> List[dict]:
    return store.select(
        BOOKS,
        eq={"isbn": isbn, "account_id": account_id},
        is_null=("deleted_at",),
    )


def _similar_title_rows(store: RecordStore, title: str, account_id: str) -> List[dict]:
    rows = store.select(
        BOOKS,
        eq={"account_id": account_id},
        ilike={"title": title},
        is_null=("deleted_at",),
        limit=TIER_QUERY_LIMIT,
    )
    # Substring pre-filter above bounds the set; edit distance only scores it.
    return [
        r for r in rows
        if title_similarity(title, r.get("title") or "") > SIMILAR_TITLE_THRESHOLD
    ]


def _title_and_author_rows(store: RecordStore, title: str, author: str, account_id: str) -> List[dict]:
    return store.select(
        BOOKS,
        eq={"account_id": account_id},
        ilike={"title": title, "author": author},
        is_null=("deleted_at",),
        limit=TIER_QUERY_LIMIT,
    )


def check_duplicates(
    store: RecordStore,
    candidate: Mapping[str, Optional[str]],
    account_id: str,
    exclude_id: Optional[str] = None,
) -> DuplicateVerdict:
    """
    Classifies existing catalog records that may duplicate `candidate`.

    Args:
        store: Record store to query (read only).
        candidate: Mapping with optional "isbn", "title" and "author".
        account_id: Account whose catalog is searched.
        exclude_id: Id of the record being edited, never reported.

    Tiers, in priority order:
        - exact ISBN match
        - title containing the candidate title with similarity > 0.6
        - title and author both containing the candidate's values

    Returns:
        DuplicateVerdict: disjoint tiers; the caller decides what to do.
    """
    isbn = _clean(candidate.get("isbn"))
    title = _clean(candidate.get("title"))
    author = _clean(candidate.get("author"))

    logger.info(
        "check_duplicates called | account_id=%s isbn=%s title=%s author=%s exclude_id=%s",
        account_id, isbn, title, author, exclude_id,
    )

    tiers: Dict[str, Callable[[], List[dict]]] = {}
    if isbn:
        tiers["exact_isbn"] = lambda: _exact_isbn_rows(store, isbn, account_id)
    if title:
        tiers["similar_title"] = lambda: _similar_title_rows(store, title, account_id)
    if title and author:
        tiers["title_and_author"] = lambda: _title_and_author_rows(store, title, author, account_id)

    results: Dict[str, List[dict]] = {}
    if tiers:
        with ThreadPoolExecutor(max_workers=len(tiers)) as pool:
            futures = {name: pool.submit(_run_tier, name, q) for name, q in tiers.items()}
            # Join: de-duplication needs every tier.
            results = {name: f.result() for name, f in futures.items()}

    seen = set()

    def keep(name: str) -> List[CatalogRecord]:
        kept = []
        for row in results.get(name, []):
            rec = CatalogRecord.from_row(row)
            if rec.deleted_at is not None:
                continue
            if exclude_id is not None and rec.id == str(exclude_id):
                continue
            if rec.id in seen:
                continue
            seen.add(rec.id)
            kept.append(rec)
        return kept

    verdict = DuplicateVerdict(
        exact_isbn_matches=keep("exact_isbn"),
        similar_title_matches=keep("similar_title"),
        title_and_author_matches=keep("title_and_author"),
    )

    logger.info(
        "Duplicate check done | exact_isbn=%d similar_title=%d title_and_author=%d",
        len(verdict.exact_isbn_matches),
        len(verdict.similar_title_matches),
        len(verdict.title_and_author_matches),
    )
    return verdict


classify = check_duplicates
