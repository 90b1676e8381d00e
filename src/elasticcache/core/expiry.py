"""
Expiration rules for cache entries.

Elasticsearch has no notion of a document TTL, so every entry stores an
absolute ``expiresAt`` (epoch seconds, ``0`` = never) and the rules below
decide liveness. ``get``/``has`` call :func:`is_live` and the garbage
sweep uses :func:`garbage_window`; both derive from the same comparison so
an entry is never live for one operation and collectable for another.

    expiresAt == 0            live forever, never collected
    expiresAt >  now          live
    0 < expiresAt <= now      expired, collectable
"""

from __future__ import annotations

NEVER = 0


def expires_at(lifetime: int, now: int) -> int:
    """Absolute expiry timestamp for an entry written at ``now``."""
    if lifetime == 0:
        return NEVER
    return now + lifetime


def is_expired(expires: int, now: int) -> bool:
    return NEVER < expires <= now


def is_live(expires: int, now: int) -> bool:
    return not is_expired(expires, now)


def garbage_window(now: int) -> tuple[int, int]:
    """Inclusive ``(lowest, highest)`` expiresAt bounds of collectable entries."""
    return NEVER + 1, now


__all__ = ["NEVER", "expires_at", "is_expired", "is_live", "garbage_window"]
