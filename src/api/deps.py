# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

from fastapi import Depends, HTTPException, Request, status

from src.config import Settings, get_settings
from src.extensions import LifecycleManager
from src.extensions.permissions import PanelPermission, PermissionChecker


def get_manager(settings: Settings = Depends(get_settings)) -> LifecycleManager:
    """Get a lifecycle manager for the configured extensions root."""
    return LifecycleManager.from_settings(settings)


def get_permission_mask(request: Request) -> int:
    """Get the caller's panel permission mask.

    The host's authentication layer resolves the session and stores the
    user's mask on ``request.state.permission_mask``.
    """
    mask = getattr(request.state, "permission_mask", None)
    # Anything but a plain integer means the session was not resolved.
    if isinstance(mask, bool) or not isinstance(mask, int):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return mask


def require_configuration_access(mask: int = Depends(get_permission_mask)) -> int:
    """Verify the caller may manage system configuration (and extensions)."""
    if not PermissionChecker().has_permission(mask, PanelPermission.MANAGE_CONFIGURATION):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manage System Configuration permission required",
        )
    return mask
