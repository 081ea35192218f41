"""Visibility levels and the linear access hierarchy ``admin ⊇ authenticated ⊇ public``."""

from __future__ import annotations

from enum import Enum


class VisibilityLevel(str, Enum):
    """Who may see a resource field."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    VisibilityLevel.PUBLIC: 0,
    VisibilityLevel.AUTHENTICATED: 1,
    VisibilityLevel.ADMIN: 2,
}


def as_level(value: VisibilityLevel | str) -> VisibilityLevel:
    """Coerce ``"public"`` etc. to a :class:`VisibilityLevel`.

    Raises:
        ValueError: For anything outside the three known levels
    """
    if isinstance(value, VisibilityLevel):
        return value
    return VisibilityLevel(value)


def is_visible_at(field_level: VisibilityLevel | str, viewer_level: VisibilityLevel | str) -> bool:
    """True iff a viewer at ``viewer_level`` may see a field declared at ``field_level``."""
    return as_level(viewer_level).rank >= as_level(field_level).rank


def highest(*levels: VisibilityLevel | None) -> VisibilityLevel | None:
    """Highest non-None level, or None if all are None."""
    present = [as_level(level) for level in levels if level is not None]
    if not present:
        return None
    return max(present, key=lambda level: level.rank)


__all__ = ["VisibilityLevel", "as_level", "is_visible_at", "highest"]
