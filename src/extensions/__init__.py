# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Extension lifecycle manager.

This module discovers, validates, installs, enables/disables,
permission-binds, and removes extension packages stored as directories
under the extensions root. It never executes extension code; the routing
layer reads the enabled/permission decisions made here.
"""

from src.extensions.base import (
    MANIFEST_FILE,
    STOCK_EXTENSIONS,
    ExtensionType,
    ManifestResult,
    NavItem,
    Package,
    ScaffoldFields,
    UploadedArchive,
)
from src.extensions.errors import (
    EmptyArchive,
    EmptyResult,
    ExtensionError,
    ExtractionFailed,
    FilesystemError,
    InvalidExtension,
    InvalidManifest,
    InvalidName,
    InvalidPermission,
    MustDisableFirst,
    NameCollision,
    NotFound,
    PermissionNotApplicable,
    SecurityViolation,
    SizeOutOfBounds,
    StateIntegrityError,
    StockProtected,
    UnreadableArchive,
    UnsafeEntryPath,
    ValidationError,
)
from src.extensions.installer import ArchiveInstaller
from src.extensions.manager import LifecycleManager
from src.extensions.manifest import read_manifest
from src.extensions.permissions import PanelPermission, PermissionChecker
from src.extensions.scaffold import ScaffoldGenerator
from src.extensions.state import LifecycleState, StateRepository

__all__ = [  # noqa: RUF022
    # Types
    "MANIFEST_FILE",
    "STOCK_EXTENSIONS",
    "ExtensionType",
    "ManifestResult",
    "NavItem",
    "Package",
    "ScaffoldFields",
    "UploadedArchive",
    # Components
    "ArchiveInstaller",
    "LifecycleManager",
    "LifecycleState",
    "ScaffoldGenerator",
    "StateRepository",
    "read_manifest",
    # Permissions
    "PanelPermission",
    "PermissionChecker",
    # Errors
    "ExtensionError",
    "ValidationError",
    "SecurityViolation",
    "StateIntegrityError",
    "FilesystemError",
    "EmptyArchive",
    "EmptyResult",
    "ExtractionFailed",
    "InvalidExtension",
    "InvalidManifest",
    "InvalidName",
    "InvalidPermission",
    "MustDisableFirst",
    "NameCollision",
    "NotFound",
    "PermissionNotApplicable",
    "SizeOutOfBounds",
    "StockProtected",
    "UnreadableArchive",
    "UnsafeEntryPath",
]
