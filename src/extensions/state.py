# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Persisted enabled/permission state for extensions.

The whole state lives in one JSON file under the extensions root. Every
mutation reloads it under an advisory lock, changes the in-memory value,
and rewrites the entire file; there is no per-key update on disk.
"""

import json
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from src.extensions.errors import StateIntegrityError
from src.extensions.fs import atomic_write_text, exclusive_lock
from src.extensions.path_safety import is_safe_directory_name
from src.extensions.permissions import PanelPermission, PermissionChecker

logger = logging.getLogger(__name__)

STATE_FILE = ".state"
STATE_TEMPLATE_FILE = ".state.dist"
LOCK_FILE = ".state.lock"

_checker = PermissionChecker()


@dataclass
class LifecycleState:
    """Enabled map and permission map, keyed by directory name.

    ``enabled`` only ever holds True values; absence means disabled.
    """

    enabled: dict[str, bool] = field(default_factory=dict)
    permissions: dict[str, PanelPermission] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: object) -> "LifecycleState":
        """Build a state from decoded file content, dropping anything malformed.

        A top-level map without an ``enabled`` key is the older flat layout
        and is read as the enabled map itself.
        """
        if not isinstance(raw, dict):
            return cls()

        if "enabled" in raw:
            raw_enabled = raw["enabled"]
        elif "permissions" in raw:
            raw_enabled = {}
        else:
            raw_enabled = raw
        raw_permissions = raw.get("permissions", {})

        state = cls()
        if isinstance(raw_enabled, dict):
            for directory, flag in raw_enabled.items():
                if is_safe_directory_name(directory) and flag:
                    state.enabled[directory] = True
        if isinstance(raw_permissions, dict):
            for directory, raw_bit in raw_permissions.items():
                bit = _checker.parse_permission(raw_bit)
                if is_safe_directory_name(directory) and bit is not None:
                    state.permissions[directory] = bit
        return state

    def copy(self) -> "LifecycleState":
        return LifecycleState(enabled=dict(self.enabled), permissions=dict(self.permissions))

    def normalized(self) -> "LifecycleState":
        """Return a copy with the same filtering ``from_raw`` applies."""
        return LifecycleState.from_raw(self.to_dict())

    def to_dict(self) -> dict[str, dict]:
        return {
            "enabled": {name: True for name, flag in self.enabled.items() if flag},
            "permissions": {name: int(bit) for name, bit in self.permissions.items()},
        }

    def serialize(self) -> str:
        """Deterministic JSON text: sorted keys, two-space indent, newline."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n"

    def is_enabled(self, directory: str) -> bool:
        return self.enabled.get(directory, False)

    def set_enabled(self, directory: str, enabled: bool) -> None:
        if enabled:
            self.enabled[directory] = True
        else:
            self.enabled.pop(directory, None)

    def set_permission(self, directory: str, bit: PanelPermission) -> None:
        self.permissions[directory] = bit

    def discard(self, directory: str) -> None:
        """Forget every entry for one directory."""
        self.enabled.pop(directory, None)
        self.permissions.pop(directory, None)

    def prune(self, valid_names: Iterable[str]) -> None:
        """Drop entries whose directory is not in ``valid_names``."""
        keep = set(valid_names)
        self.enabled = {name: flag for name, flag in self.enabled.items() if name in keep}
        self.permissions = {name: bit for name, bit in self.permissions.items() if name in keep}


class StateRepository:
    """Loads and saves the LifecycleState file for one extensions root.

    Parsed state is cached per instance, keyed on the file's stat
    signature. ``save`` always drops the cache entry so a write followed
    by a read in the same operation sees the new content.
    """

    def __init__(
        self,
        root: Path,
        state_file: str = STATE_FILE,
        template_file: str = STATE_TEMPLATE_FILE,
        lock_file: str = LOCK_FILE,
    ) -> None:
        self.root = root
        self.state_path = root / state_file
        self.template_path = root / template_file
        self.lock_path = root / lock_file
        self._cache: dict[Path, tuple[tuple[int, int, int], LifecycleState]] = {}

    def _source_path(self) -> Path | None:
        if self.state_path.is_file():
            return self.state_path
        if self.template_path.is_file():
            return self.template_path
        return None

    def invalidate(self, path: Path | None = None) -> None:
        """Drop cached state for ``path`` (default: the state file)."""
        self._cache.pop(path or self.state_path, None)

    def load(self) -> LifecycleState:
        """Read the state file, else the template, else empty state.

        Malformed entries are dropped silently. An unreadable or corrupt
        file reads as empty state.
        """
        source = self._source_path()
        if source is None:
            return LifecycleState()

        try:
            st = os.stat(source)
        except OSError:
            return LifecycleState()
        signature = (st.st_mtime_ns, st.st_size, st.st_ino)

        cached = self._cache.get(source)
        if cached is not None and cached[0] == signature:
            return cached[1].copy()

        try:
            raw = json.loads(source.read_text(encoding="utf-8-sig") or "{}")
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable extension state {source.name}: {e}")
            return LifecycleState()

        state = LifecycleState.from_raw(raw)
        self._cache[source] = (signature, state)
        return state.copy()

    def save(self, state: LifecycleState) -> None:
        """Filter and atomically rewrite the state file.

        Raises:
            StateIntegrityError: If the file could not be written
        """
        text = state.normalized().serialize()
        try:
            atomic_write_text(self.state_path, text)
        except OSError as e:
            logger.error(f"Failed to persist extension state {self.state_path}: {e}")
            raise StateIntegrityError("Extension state could not be saved.") from e
        finally:
            self.invalidate(self.state_path)

    def mutate(self, change: Callable[[LifecycleState], None]) -> LifecycleState:
        """Read-modify-write the whole state under the advisory lock.

        The file is only rewritten when ``change`` altered the state.

        Raises:
            StateIntegrityError: If the lock or the write fails
        """
        try:
            with exclusive_lock(self.lock_path):
                current = self.load()
                updated = current.copy()
                change(updated)
                if updated.to_dict() != current.to_dict():
                    self.save(updated)
                return updated
        except OSError as e:
            logger.error(f"Could not lock extension state {self.lock_path}: {e}")
            raise StateIntegrityError("Extension state could not be saved.") from e

    def set_enabled(self, directory: str, enabled: bool) -> LifecycleState:
        return self.mutate(lambda state: state.set_enabled(directory, enabled))

    def set_permission(self, directory: str, bit: PanelPermission) -> LifecycleState:
        return self.mutate(lambda state: state.set_permission(directory, bit))

    def discard(self, directory: str) -> LifecycleState:
        return self.mutate(lambda state: state.discard(directory))

    def prune_missing(self, valid_names: Iterable[str]) -> LifecycleState:
        names = set(valid_names)
        return self.mutate(lambda state: state.prune(names))
