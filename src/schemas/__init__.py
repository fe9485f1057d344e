"""Pydantic schemas package."""
from src.schemas.extension import (
    ErrorResponse,
    ExtensionCreateRequest,
    ExtensionDeleteResponse,
    ExtensionListResponse,
    ExtensionPermissionUpdate,
    ExtensionResponse,
    ExtensionSummary,
    NavigationItem,
    PanelNavigationResponse,
    PermissionOption,
)

__all__ = [
    "ErrorResponse",
    "ExtensionCreateRequest",
    "ExtensionDeleteResponse",
    "ExtensionListResponse",
    "ExtensionPermissionUpdate",
    "ExtensionResponse",
    "ExtensionSummary",
    "NavigationItem",
    "PanelNavigationResponse",
    "PermissionOption",
]
