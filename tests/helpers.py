# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Shared builders for extension tests."""

import io
import json
import zipfile
from pathlib import Path

from src.extensions import UploadedArchive
from src.extensions.base import MANIFEST_FILE

# Small stock set so tests can exercise stock protection by name
TEST_STOCK_NAMES = frozenset({"reserved-stock-name", "database"})


def build_zip(entries: dict[str, str | bytes]) -> bytes:
    """Build ZIP bytes from a mapping of entry path to content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for entry_path, content in entries.items():
            zf.writestr(zipfile.ZipInfo(entry_path), content)
    return buffer.getvalue()


def make_upload(filename: str, entries: dict[str, str | bytes]) -> UploadedArchive:
    """Wrap ZIP bytes as an UploadedArchive."""
    payload = build_zip(entries)
    return UploadedArchive(filename=filename, size=len(payload), stream=io.BytesIO(payload))


def write_package(root: Path, directory: str, manifest: dict | str | None) -> Path:
    """Create a package directory with the given manifest content.

    ``None`` leaves the manifest out; a string is written verbatim.
    """
    package_dir = root / directory
    package_dir.mkdir(parents=True)
    if manifest is not None:
        content = manifest if isinstance(manifest, str) else json.dumps(manifest)
        (package_dir / MANIFEST_FILE).write_text(content, encoding="utf-8")
    return package_dir
