# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Pydantic schemas for extension manager API endpoints."""

from pydantic import BaseModel, Field

from src.extensions.base import Package


class PermissionOption(BaseModel):
    """One assignable panel permission bit."""

    value: int
    name: str
    label: str


class ExtensionSummary(BaseModel):
    """One extension as shown in the panel list."""

    directory: str
    name: str
    version: str = ""
    description: str = ""
    author: str = ""
    homepage: str = ""
    type: str
    panel_path: str
    panel_section: str
    valid: bool
    invalid_reason: str = ""
    enabled: bool
    is_stock: bool
    can_delete: bool
    delete_block_reason: str = ""
    required_permission: int | None = None

    @classmethod
    def from_package(cls, package: Package) -> "ExtensionSummary":
        manifest = package.manifest
        return cls(
            directory=package.directory,
            name=package.name,
            version=manifest.version,
            description=manifest.description,
            author=manifest.author,
            homepage=manifest.homepage,
            type=package.type.value,
            panel_path=package.panel_path,
            panel_section=package.panel_section,
            valid=package.valid,
            invalid_reason=package.invalid_reason,
            enabled=package.enabled,
            is_stock=package.is_stock,
            can_delete=package.can_delete,
            delete_block_reason=package.delete_block_reason,
            required_permission=(
                int(package.required_permission)
                if package.required_permission is not None
                else None
            ),
        )


class ExtensionListResponse(BaseModel):
    """Response for extension list endpoint."""

    extensions: list[ExtensionSummary]
    permission_options: list[PermissionOption]


class ExtensionResponse(BaseModel):
    """Response after a lifecycle action on one extension."""

    success: bool
    extension: ExtensionSummary
    message: str = ""


class ExtensionDeleteResponse(BaseModel):
    """Response after deleting an extension."""

    success: bool
    directory: str
    message: str = ""


class ExtensionCreateRequest(BaseModel):
    """Request to scaffold a new extension."""

    directory: str = Field(..., max_length=120, description="Directory slug")
    name: str = Field(..., max_length=120)
    version: str = Field(default="", max_length=80)
    description: str = Field(default="", max_length=1000)
    type: str = Field(default="basic", max_length=20)
    author: str = Field(default="", max_length=120)
    homepage: str = Field(default="", max_length=400)
    panel_path: str = Field(default="", max_length=200)
    panel_section: str = Field(default="", max_length=200)
    generate_guidance: bool | None = Field(
        default=None,
        description="Write an AGENTS.md guide; defaults to the server setting",
    )


class ExtensionPermissionUpdate(BaseModel):
    """Request to change the permission bit required for an extension."""

    permission: int


class ErrorResponse(BaseModel):
    """Error body for failed lifecycle actions."""

    detail: str
    code: str


class NavigationItem(BaseModel):
    """One panel navigation link."""

    directory: str
    label: str
    path: str
    section: str


class PanelNavigationResponse(BaseModel):
    """Extension links the caller may see, grouped for the panel menu."""

    extensions: list[NavigationItem]
    system_extensions: list[NavigationItem]
