"""Query DSL builders for the predicates the backend needs.

Every builder returns the body of an Elasticsearch ``query`` clause. The
in-memory store evaluates exactly this subset, so new predicates must be
taught to :mod:`elasticcache.core.store` as well.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from elasticcache.core import expiry
from elasticcache.core.entry import EXPIRES_AT_FIELD, TAGS_FIELD

Query = dict[str, Any]


def match_all() -> Query:
    return {"match_all": {}}


def tag_equals(tag: str) -> Query:
    """Documents whose tag array contains ``tag`` (exact, keyword match)."""
    return {"term": {TAGS_FIELD: tag}}


def tags_any(tags: Iterable[str]) -> Query:
    """Documents carrying at least one of ``tags``."""
    return {"terms": {TAGS_FIELD: list(tags)}}


def expires_between(lowest: int, highest: int) -> Query:
    """Documents with ``lowest <= expiresAt <= highest``."""
    return {"range": {EXPIRES_AT_FIELD: {"gte": lowest, "lte": highest}}}


def expired(now: int) -> Query:
    """Documents with a finite lifetime that has run out at ``now``."""
    return expires_between(*expiry.garbage_window(now))


__all__ = ["Query", "match_all", "tag_equals", "tags_any", "expires_between", "expired"]
