# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for extension permission bits."""

import pytest

from src.extensions.permissions import (
    DEFAULT_PERMISSION,
    PERMISSION_LABELS,
    PanelPermission,
    PermissionChecker,
)


class TestPanelPermission:
    """Tests for PanelPermission enum."""

    def test_bit_values(self):
        """Test that bit values match the authorization subsystem."""
        assert PanelPermission.PANEL_LOGIN == 1
        assert PanelPermission.MANAGE_CONTENT == 2
        assert PanelPermission.MANAGE_USERS == 4
        assert PanelPermission.MANAGE_GROUPS == 8
        assert PanelPermission.MANAGE_CONFIGURATION == 16
        assert PanelPermission.MANAGE_TAXONOMY == 64

    def test_every_bit_has_a_label(self):
        """Test that each assignable bit is labelled."""
        assert set(PERMISSION_LABELS) == set(PanelPermission)

    def test_default_is_panel_login(self):
        """Test the default required bit."""
        assert DEFAULT_PERMISSION == PanelPermission.PANEL_LOGIN


class TestPermissionChecker:
    """Tests for PermissionChecker."""

    @pytest.fixture
    def checker(self):
        return PermissionChecker()

    @pytest.mark.parametrize("raw", [1, 2, 4, 8, 16, 64, "4", " 16 "])
    def test_valid_bits(self, checker, raw):
        """Test that assignable bits parse, including numeric strings."""
        assert checker.parse_permission(raw) is not None

    @pytest.mark.parametrize("raw", [0, 3, 32, 128, -1, "abc", "", "1.0", None, 4.0, True, [4]])
    def test_invalid_bits(self, checker, raw):
        """Test that combined, unknown and non-integer values are rejected."""
        assert checker.parse_permission(raw) is None

    def test_parse_returns_enum_member(self, checker):
        """Test that parsing yields the enum member."""
        assert checker.parse_permission("64") is PanelPermission.MANAGE_TAXONOMY

    def test_has_permission(self, checker):
        """Test mask membership checks."""
        mask = PanelPermission.PANEL_LOGIN | PanelPermission.MANAGE_USERS

        assert checker.has_permission(mask, PanelPermission.MANAGE_USERS) is True
        assert checker.has_permission(mask, PanelPermission.MANAGE_GROUPS) is False
        assert checker.has_permission(0, PanelPermission.PANEL_LOGIN) is False

    def test_format_permissions_for_display(self, checker):
        """Test display formatting is ordered by bit value."""
        options = checker.format_permissions_for_display()

        assert [option["value"] for option in options] == [1, 2, 4, 8, 16, 64]
        assert options[0] == {"value": 1, "name": "PANEL_LOGIN", "label": "Access Dashboard"}
        assert options[-1]["label"] == "Manage Taxonomy"
