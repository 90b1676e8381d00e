"""Cache entry value object and its Elasticsearch document layout.

One document per cache key::

    _id        identifier
    content    opaque payload (string)
    tags       array of strings
    expiresAt  epoch seconds, 0 = never expires
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from elasticcache.core import expiry

CONTENT_FIELD = "content"
TAGS_FIELD = "tags"
EXPIRES_AT_FIELD = "expiresAt"


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate tags while keeping their first-seen order."""
    return tuple(dict.fromkeys(tags))


@dataclass(frozen=True)
class CacheEntry:
    """A cache entry as stored in the index."""

    identifier: str
    content: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    expires_at: int = expiry.NEVER

    def is_live(self, now: int) -> bool:
        return expiry.is_live(self.expires_at, now)

    def to_document(self) -> dict[str, Any]:
        return {
            CONTENT_FIELD: self.content,
            TAGS_FIELD: list(self.tags),
            EXPIRES_AT_FIELD: self.expires_at,
        }

    @classmethod
    def from_document(cls, identifier: str, source: Mapping[str, Any]) -> CacheEntry | None:
        """Build an entry from a document ``_source``.

        Returns None for documents that do not follow the layout above
        (no string content, or a non-integer expiresAt).
        """
        content = source.get(CONTENT_FIELD)
        expires = source.get(EXPIRES_AT_FIELD, expiry.NEVER)
        if not isinstance(content, str) or isinstance(expires, bool) or not isinstance(expires, int):
            return None
        tags = source.get(TAGS_FIELD) or ()
        if isinstance(tags, str):
            tags = (tags,)
        return cls(
            identifier=identifier,
            content=content,
            tags=normalize_tags(str(tag) for tag in tags),
            expires_at=expires,
        )


__all__ = [
    "CONTENT_FIELD",
    "TAGS_FIELD",
    "EXPIRES_AT_FIELD",
    "CacheEntry",
    "normalize_tags",
]
