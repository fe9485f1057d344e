# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Panel permission bits that can gate an extension's panel visibility.

The bits belong to the authorization subsystem; this module only mirrors
the extension-assignable subset and validates membership.
"""

from enum import IntEnum


class PanelPermission(IntEnum):
    """Extension-assignable panel permission bits."""

    PANEL_LOGIN = 1
    MANAGE_CONTENT = 2
    MANAGE_USERS = 4
    MANAGE_GROUPS = 8
    MANAGE_CONFIGURATION = 16
    MANAGE_TAXONOMY = 64


PERMISSION_LABELS: dict[PanelPermission, str] = {
    PanelPermission.PANEL_LOGIN: "Access Dashboard",
    PanelPermission.MANAGE_CONTENT: "Manage Content",
    PanelPermission.MANAGE_TAXONOMY: "Manage Taxonomy",
    PanelPermission.MANAGE_USERS: "Manage Users",
    PanelPermission.MANAGE_GROUPS: "Manage Groups",
    PanelPermission.MANAGE_CONFIGURATION: "Manage System Configuration",
}

# Required bit for basic extensions with no explicit assignment
DEFAULT_PERMISSION = PanelPermission.PANEL_LOGIN


class PermissionChecker:
    """Validates extension permission bits."""

    def parse_permission(self, raw: object) -> PanelPermission | None:
        """Parse a raw state or request value into a PanelPermission.

        Integer-like strings are accepted since older state files and form
        posts carry bits as text. Booleans are never bits.

        Args:
            raw: Raw value

        Returns:
            PanelPermission or None if not an assignable bit
        """
        if isinstance(raw, bool):
            return None
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw.isdigit():
                return None
            raw = int(raw)
        if not isinstance(raw, int):
            return None
        try:
            return PanelPermission(raw)
        except ValueError:
            return None

    def has_permission(self, mask: int, required: PanelPermission) -> bool:
        """Check whether a user's permission mask includes a required bit.

        Args:
            mask: Bitmask from the authorization subsystem
            required: Required bit

        Returns:
            True if the bit is set in the mask
        """
        return bool(int(mask) & int(required))

    def format_permissions_for_display(self) -> list[dict[str, object]]:
        """Format assignable permissions for UI display.

        Returns:
            List of dicts with 'value', 'name' and 'label' keys, ordered by bit
        """
        return [
            {"value": int(perm), "name": perm.name, "label": PERMISSION_LABELS[perm]}
            for perm in sorted(PERMISSION_LABELS)
        ]
