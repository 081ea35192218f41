"""
Tests for visibility levels.
"""

from __future__ import annotations

import pytest

from proclayer.resources.visibility import VisibilityLevel, as_level, highest, is_visible_at

PUBLIC = VisibilityLevel.PUBLIC
AUTH = VisibilityLevel.AUTHENTICATED
ADMIN = VisibilityLevel.ADMIN


class TestHierarchy:
    @pytest.mark.parametrize(
        "field, viewer, visible",
        [
            (PUBLIC, PUBLIC, True),
            (PUBLIC, ADMIN, True),
            (AUTH, PUBLIC, False),
            (AUTH, AUTH, True),
            (ADMIN, AUTH, False),
            (ADMIN, ADMIN, True),
        ],
    )
    def test_is_visible_at(self, field, viewer, visible):
        assert is_visible_at(field, viewer) is visible

    def test_strings_accepted(self):
        assert is_visible_at("authenticated", "admin") is True

    def test_rank(self):
        assert PUBLIC.rank < AUTH.rank < ADMIN.rank


class TestHelpers:
    def test_as_level(self):
        assert as_level("admin") is ADMIN
        assert as_level(AUTH) is AUTH
        with pytest.raises(ValueError):
            as_level("root")

    def test_highest(self):
        assert highest(None, AUTH, PUBLIC) is AUTH
        assert highest(None, None) is None
        assert highest() is None
