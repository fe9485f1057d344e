# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Panel navigation API endpoints."""

from fastapi import APIRouter, Depends

from src.api.deps import get_manager, get_permission_mask
from src.extensions import LifecycleManager, NavItem
from src.schemas.extension import NavigationItem, PanelNavigationResponse

router = APIRouter(prefix="/panel", tags=["panel"])


def _to_schema(item: NavItem) -> NavigationItem:
    return NavigationItem(
        directory=item.directory,
        label=item.label,
        path=item.path,
        section=item.section,
    )


@router.get("/navigation", response_model=PanelNavigationResponse)
def get_navigation(
    mask: int = Depends(get_permission_mask),
    manager: LifecycleManager = Depends(get_manager),
) -> PanelNavigationResponse:
    """List the enabled extensions the caller may open from the panel menu."""
    basic_items, system_items = manager.panel_navigation(mask)
    return PanelNavigationResponse(
        extensions=[_to_schema(item) for item in basic_items],
        system_extensions=[_to_schema(item) for item in system_items],
    )
