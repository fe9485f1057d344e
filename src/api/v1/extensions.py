# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Extension manager API endpoints.

Each endpoint maps 1:1 onto a LifecycleManager operation. Lifecycle errors
propagate to ``extension_error_handler``, which turns them into a single
operator-safe message.
"""

import logging
import os

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.deps import get_manager, require_configuration_access
from src.config import Settings, get_settings
from src.extensions import (
    ExtensionError,
    FilesystemError,
    LifecycleManager,
    MustDisableFirst,
    NameCollision,
    NotFound,
    ScaffoldFields,
    StateIntegrityError,
    StockProtected,
    UploadedArchive,
)
from src.schemas.extension import (
    ErrorResponse,
    ExtensionCreateRequest,
    ExtensionDeleteResponse,
    ExtensionListResponse,
    ExtensionPermissionUpdate,
    ExtensionResponse,
    ExtensionSummary,
    PermissionOption,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/extensions",
    tags=["extensions"],
    dependencies=[Depends(require_configuration_access)],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)


def status_for_error(error: ExtensionError) -> int:
    """Map a lifecycle error to an HTTP status code."""
    if isinstance(error, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, NameCollision | StockProtected | MustDisableFirst):
        return status.HTTP_409_CONFLICT
    if isinstance(error, StateIntegrityError | FilesystemError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


async def extension_error_handler(request: Request, exc: ExtensionError) -> JSONResponse:
    """Render a lifecycle error as ``{"detail": ..., "code": ...}``."""
    logger.info(f"Extension action {request.url.path} failed: {exc.code}")
    return JSONResponse(
        status_code=status_for_error(exc),
        content={"detail": exc.message, "code": exc.code},
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render a request validation failure in the lifecycle error shape.

    Only the first failing field is reported, and the submitted value is
    never echoed back.
    """
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid value")
        detail = f"{location}: {message}" if location else message
    else:
        detail = "Invalid request."
    logger.info(f"Request to {request.url.path} failed validation: {detail}")
    return JSONResponse(
        status_code=422,
        content={"detail": detail, "code": "ValidationError"},
    )


def _uploaded_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


@router.get("", response_model=ExtensionListResponse)
def list_extensions(
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionListResponse:
    """List all extensions on disk."""
    return ExtensionListResponse(
        extensions=[ExtensionSummary.from_package(p) for p in manager.list()],
        permission_options=[PermissionOption(**option) for option in manager.permission_options()],
    )


@router.post("/upload", response_model=ExtensionResponse, status_code=status.HTTP_201_CREATED)
def upload_extension(
    file: UploadFile = File(...),
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionResponse:
    """Install an extension from a ZIP archive. It starts disabled."""
    upload = UploadedArchive(
        filename=file.filename or "",
        size=_uploaded_size(file),
        stream=file.file,
    )
    package = manager.install_from_archive(upload)
    return ExtensionResponse(
        success=True,
        extension=ExtensionSummary.from_package(package),
        message=f"Extension {package.name} installed. Enable it to activate.",
    )


@router.post("/create", response_model=ExtensionResponse, status_code=status.HTTP_201_CREATED)
def create_extension(
    payload: ExtensionCreateRequest,
    manager: LifecycleManager = Depends(get_manager),
    settings: Settings = Depends(get_settings),
) -> ExtensionResponse:
    """Scaffold a new extension. It starts disabled."""
    fields = ScaffoldFields(
        directory=payload.directory,
        name=payload.name,
        version=payload.version,
        description=payload.description,
        type=payload.type,
        author=payload.author,
        homepage=payload.homepage,
        panel_path=payload.panel_path,
        panel_section=payload.panel_section,
        generate_guidance=(
            settings.generate_guidance
            if payload.generate_guidance is None
            else payload.generate_guidance
        ),
    )
    package = manager.install_from_scaffold(fields)
    return ExtensionResponse(
        success=True,
        extension=ExtensionSummary.from_package(package),
        message=f"Extension {package.name} created.",
    )


@router.get("/{name}", response_model=ExtensionSummary)
def get_extension(
    name: str,
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionSummary:
    """Get details for one extension."""
    return ExtensionSummary.from_package(manager.get(name))


@router.post("/{name}/enable", response_model=ExtensionResponse)
def enable_extension(
    name: str,
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionResponse:
    """Enable an extension with a valid manifest."""
    package = manager.toggle(name, True)
    return ExtensionResponse(
        success=True,
        extension=ExtensionSummary.from_package(package),
        message=f"Extension {package.name} enabled.",
    )


@router.post("/{name}/disable", response_model=ExtensionResponse)
def disable_extension(
    name: str,
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionResponse:
    """Disable an extension."""
    package = manager.toggle(name, False)
    return ExtensionResponse(
        success=True,
        extension=ExtensionSummary.from_package(package),
        message=f"Extension {package.name} disabled.",
    )


@router.put("/{name}/permission", response_model=ExtensionResponse)
def update_extension_permission(
    name: str,
    update: ExtensionPermissionUpdate,
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionResponse:
    """Set the panel permission required to access a basic extension."""
    package = manager.assign_permission(name, update.permission)
    return ExtensionResponse(
        success=True,
        extension=ExtensionSummary.from_package(package),
        message="Permission updated.",
    )


@router.delete("/{name}", response_model=ExtensionDeleteResponse)
def delete_extension(
    name: str,
    manager: LifecycleManager = Depends(get_manager),
) -> ExtensionDeleteResponse:
    """Delete a disabled, non-stock extension."""
    manager.delete(name)
    return ExtensionDeleteResponse(
        success=True,
        directory=name,
        message=f"Extension {name} deleted.",
    )
