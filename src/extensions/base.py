# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Value types shared across the extension lifecycle manager."""

from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from src.extensions.permissions import PanelPermission

MANIFEST_FILE = "extension.json"
ROUTES_FILE = "panel_routes.py"
VIEWS_DIR = "views"

# Stock extensions ship with the host and can be disabled but never deleted.
STOCK_EXTENSIONS: frozenset[str] = frozenset({"contact", "database", "phpinfo", "signups"})


class ExtensionType(str, Enum):
    """Declared extension type."""

    BASIC = "basic"
    SYSTEM = "system"


class InstallStage(str, Enum):
    """Stages of a single archive install attempt."""

    RECEIVED = "received"
    DIRECTORY_CREATED = "directory_created"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    COMMITTED = "committed"
    REMOVED = "removed"


@dataclass
class ManifestResult:
    """Outcome of reading one package's ``extension.json``.

    ``valid`` is False whenever ``invalid_reason`` is set; the reason is
    meant to be shown to the operator verbatim.
    """

    valid: bool
    invalid_reason: str = ""
    type: ExtensionType = ExtensionType.BASIC
    panel_path: str = ""
    panel_section: str = ""
    name: str = ""
    version: str = ""
    description: str = ""
    author: str = ""
    homepage: str = ""

    @classmethod
    def invalid(cls, reason: str) -> "ManifestResult":
        return cls(valid=False, invalid_reason=reason)


@dataclass
class Package:
    """One extension directory as seen by the panel."""

    directory: str
    manifest: ManifestResult
    enabled: bool = False
    is_stock: bool = False
    can_delete: bool = False
    delete_block_reason: str = ""
    required_permission: PanelPermission | None = None

    @property
    def valid(self) -> bool:
        return self.manifest.valid

    @property
    def invalid_reason(self) -> str:
        return self.manifest.invalid_reason

    @property
    def type(self) -> ExtensionType:
        return self.manifest.type

    @property
    def name(self) -> str:
        return self.manifest.name or self.directory

    @property
    def panel_path(self) -> str:
        """Panel route path, falling back to the directory name."""
        return self.manifest.panel_path or self.directory

    @property
    def panel_section(self) -> str:
        return self.manifest.panel_section or self.panel_path.replace("/", "_")


@dataclass
class UploadedArchive:
    """A submitted compressed package. Transient, never persisted."""

    filename: str
    size: int
    stream: BinaryIO


@dataclass
class ScaffoldFields:
    """Operator-supplied values for generating a new package."""

    directory: str
    name: str
    version: str = ""
    description: str = ""
    type: str = ExtensionType.BASIC.value
    author: str = ""
    homepage: str = ""
    panel_path: str = ""
    panel_section: str = ""
    generate_guidance: bool = True


@dataclass
class NavItem:
    """One panel navigation link for an enabled extension."""

    directory: str
    label: str
    path: str
    section: str
