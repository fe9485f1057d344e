# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Extension lifecycle orchestration for the admin panel.

Each operation reads the current state, performs its filesystem change,
and commits the state change. If the commit fails after a package was
written, the package is removed again.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from src.extensions.base import (
    STOCK_EXTENSIONS,
    ExtensionType,
    InstallStage,
    NavItem,
    Package,
    ScaffoldFields,
    UploadedArchive,
)
from src.extensions.errors import (
    FilesystemError,
    InvalidManifest,
    InvalidName,
    InvalidPermission,
    MustDisableFirst,
    NotFound,
    PermissionNotApplicable,
    StateIntegrityError,
    StockProtected,
)
from src.extensions.fs import remove_tree
from src.extensions.installer import ArchiveInstaller
from src.extensions.manifest import read_manifest
from src.extensions.path_safety import is_safe_directory_name
from src.extensions.permissions import DEFAULT_PERMISSION, PermissionChecker
from src.extensions.scaffold import ScaffoldGenerator
from src.extensions.state import LifecycleState, StateRepository

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> list[str | int]:
    """Case-insensitive natural ordering: ``ext2`` sorts before ``ext10``."""
    parts = _DIGITS.split(name.lower())
    return [int(part) if index % 2 else part for index, part in enumerate(parts)]


class LifecycleManager:
    """Discovers, installs, toggles, gates, and removes extension packages."""

    def __init__(
        self,
        root: Path,
        state: StateRepository | None = None,
        installer: ArchiveInstaller | None = None,
        scaffold: ScaffoldGenerator | None = None,
        stock_names: Iterable[str] = STOCK_EXTENSIONS,
    ) -> None:
        self.root = root
        self.stock_names = frozenset(stock_names)
        self.state = state or StateRepository(root)
        self.installer = installer or ArchiveInstaller(root, reserved_names=self.stock_names)
        self.scaffold = scaffold or ScaffoldGenerator(root, stock_names=self.stock_names)
        self._checker = PermissionChecker()

    @classmethod
    def from_settings(cls, settings: Settings) -> LifecycleManager:
        """Build a manager and its collaborators from application settings."""
        root = Path(settings.root)
        return cls(
            root,
            state=StateRepository(
                root,
                state_file=settings.state_file,
                template_file=settings.state_template_file,
                lock_file=settings.lock_file,
            ),
            installer=ArchiveInstaller(
                root,
                reserved_names=STOCK_EXTENSIONS,
                max_archive_bytes=settings.max_archive_bytes,
                max_extracted_bytes=settings.max_extracted_bytes,
            ),
            scaffold=ScaffoldGenerator(root, stock_names=STOCK_EXTENSIONS),
        )

    def _directory_names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        names = []
        for entry in self.root.iterdir():
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if not is_safe_directory_name(entry.name):
                logger.warning(f"Skipping extension directory with unsafe name: {entry.name!r}")
                continue
            names.append(entry.name)
        return sorted(names, key=natural_sort_key)

    def _build_package(self, directory: str, state: LifecycleState) -> Package:
        manifest = read_manifest(self.root / directory)
        # Invalid packages are never active, whatever the state file says.
        enabled = manifest.valid and state.is_enabled(directory)
        is_stock = directory in self.stock_names

        if is_stock:
            block_reason = "Stock extensions cannot be deleted."
        elif enabled:
            block_reason = "Disable this extension before deleting it."
        else:
            block_reason = ""

        required = None
        if manifest.type == ExtensionType.BASIC:
            required = state.permissions.get(directory, DEFAULT_PERMISSION)

        return Package(
            directory=directory,
            manifest=manifest,
            enabled=enabled,
            is_stock=is_stock,
            can_delete=not is_stock and not enabled,
            delete_block_reason=block_reason,
            required_permission=required,
        )

    def _require_name(self, name: str) -> str:
        if not is_safe_directory_name(name):
            raise InvalidName("Invalid extension name.")
        return name

    def _require_existing(self, name: str) -> Path:
        path = self.root / self._require_name(name)
        if not path.is_dir():
            raise NotFound(f"Extension '{name}' was not found.")
        return path

    def list(self) -> list[Package]:
        """List all packages in deterministic natural order.

        Prunes persisted state for directories that are gone or invalid,
        writing the state file only when something was removed.
        """
        state = self.state.load()
        packages = [self._build_package(name, state) for name in self._directory_names()]

        valid_names = {package.directory for package in packages if package.valid}
        stale = (set(state.enabled) | set(state.permissions)) - valid_names
        if stale:
            logger.warning(f"Pruning stale extension state for: {', '.join(sorted(stale))}")
            self.state.prune_missing(valid_names)

        logger.debug(f"Listed {len(packages)} extensions in {self.root}")
        return packages

    def get(self, name: str) -> Package:
        """Return a single package view.

        Raises:
            InvalidName, NotFound
        """
        self._require_existing(name)
        return self._build_package(name, self.state.load())

    def enabled_packages(self) -> list[Package]:
        """Packages the routing layer may register: enabled and valid."""
        return [package for package in self.list() if package.enabled]

    def panel_navigation(self, mask: int) -> tuple[list[NavItem], list[NavItem]]:
        """Build the panel navigation a user with ``mask`` may see.

        System packages always form their own group. Basic packages are
        listed only when the mask holds their required bit. Both groups are
        sorted case-insensitively by label.

        Args:
            mask: The user's permission bitmask

        Returns:
            Tuple of (basic items, system items)
        """
        basic_items: list[NavItem] = []
        system_items: list[NavItem] = []
        for package in self.enabled_packages():
            item = NavItem(
                directory=package.directory,
                label=package.name,
                path="/" + package.panel_path.lstrip("/"),
                section=package.panel_section,
            )
            if package.type == ExtensionType.SYSTEM:
                system_items.append(item)
                continue

            required = package.required_permission or DEFAULT_PERMISSION
            if not self._checker.has_permission(mask, required):
                continue
            basic_items.append(item)

        basic_items.sort(key=lambda item: item.label.casefold())
        system_items.sort(key=lambda item: item.label.casefold())
        return basic_items, system_items

    def permission_options(self) -> list[dict[str, object]]:
        """Assignable permission bits with labels, ordered by bit."""
        return self._checker.format_permissions_for_display()

    def toggle(self, name: str, enable: bool) -> Package:
        """Enable or disable a package.

        Raises:
            InvalidName, NotFound, InvalidManifest, StateIntegrityError
        """
        path = self._require_existing(name)
        manifest = read_manifest(path)

        if enable and not manifest.valid:
            # Strip any stale entry so the package is never relisted as active.
            self.state.set_enabled(name, False)
            raise InvalidManifest(manifest.invalid_reason)

        self.state.set_enabled(name, enable)
        logger.info(f"{'Enabled' if enable else 'Disabled'} extension {name}")
        return self.get(name)

    def assign_permission(self, name: str, bit: object) -> Package:
        """Set the panel permission bit required to see a basic package.

        Raises:
            InvalidName, InvalidPermission, NotFound,
            PermissionNotApplicable, StateIntegrityError
        """
        self._require_name(name)
        permission = self._checker.parse_permission(bit)
        if permission is None:
            raise InvalidPermission("Unknown permission.")

        path = self._require_existing(name)
        manifest = read_manifest(path)
        if not manifest.valid:
            raise InvalidManifest(manifest.invalid_reason)
        if manifest.type != ExtensionType.BASIC:
            raise PermissionNotApplicable("Permissions can only be assigned to basic extensions.")

        self.state.set_permission(name, permission)
        logger.info(f"Extension {name} now requires {permission.name}")
        return self.get(name)

    def delete(self, name: str) -> None:
        """Remove a disabled, non-stock package from disk.

        Raises:
            InvalidName, StockProtected, NotFound, MustDisableFirst,
            FilesystemError, StateIntegrityError
        """
        self._require_name(name)
        if name in self.stock_names:
            raise StockProtected("Stock extensions cannot be deleted.")

        path = self._require_existing(name)
        package = self._build_package(name, self.state.load())
        if package.enabled:
            raise MustDisableFirst("Disable this extension before deleting it.")

        if not remove_tree(path):
            raise FilesystemError("Extension directory could not be removed.")

        self.state.discard(name)
        logger.info(f"Deleted extension {name}")

    def install_from_archive(self, upload: UploadedArchive) -> Package:
        """Install an uploaded archive; the new package starts disabled."""
        name = self.installer.install(upload)
        return self._commit_new_package(name)

    def install_from_scaffold(self, fields: ScaffoldFields) -> Package:
        """Generate a new package; it starts disabled."""
        name = self.scaffold.create(fields)
        return self._commit_new_package(name)

    def _commit_new_package(self, name: str) -> Package:
        # Leftover state for a reused name must never carry over.
        try:
            self.state.discard(name)
        except StateIntegrityError:
            logger.error(f"Rolling back new extension {name}: state commit failed")
            remove_tree(self.root / name)
            raise

        logger.debug(f"Installing extension {name}: {InstallStage.COMMITTED.value}")
        logger.info(f"Installed extension {name} (disabled)")
        return self.get(name)
