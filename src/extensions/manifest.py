# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Extension manifest parsing and validation."""

import json
import logging
import re
from pathlib import Path

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.extensions.base import MANIFEST_FILE, ExtensionType, ManifestResult

logger = logging.getLogger(__name__)

PANEL_PATH_PATTERN = re.compile(r"[a-z0-9][a-z0-9_/-]*", re.IGNORECASE)
SECTION_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]+")

REASON_MISSING = f"{MANIFEST_FILE} is missing."
REASON_UNREADABLE = f"{MANIFEST_FILE} could not be read."
REASON_EMPTY = f"{MANIFEST_FILE} is empty."
REASON_NOT_OBJECT = f"{MANIFEST_FILE} must contain a JSON object."
REASON_MISSING_NAME = f"{MANIFEST_FILE} must declare a non-empty name."

_http_url = TypeAdapter(HttpUrl)


def _text(value: object) -> str:
    """Coerce a manifest scalar to a trimmed string; anything else is empty."""
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, str | int | float):
        return str(value).strip()
    return ""


def normalize_type(value: object) -> ExtensionType:
    """Clamp a declared type to basic/system; unknown values become basic."""
    try:
        return ExtensionType(_text(value).lower())
    except ValueError:
        return ExtensionType.BASIC


def is_valid_panel_path(value: str) -> bool:
    return PANEL_PATH_PATTERN.fullmatch(value) is not None


def normalize_panel_section(value: str) -> str:
    """Reduce a section hint to a safe ``[a-z0-9_-]`` token."""
    section = SECTION_UNSAFE_CHARS.sub("", value.lower().replace("/", "_"))
    return section.strip("_-")


def is_valid_homepage(value: str) -> bool:
    """Check for an absolute http/https URL."""
    if not value:
        return False
    try:
        url = _http_url.validate_python(value)
    except PydanticValidationError:
        return False
    return url.scheme in ("http", "https") and bool(url.host)


def read_manifest(package_dir: Path) -> ManifestResult:
    """Read and validate ``extension.json`` inside a package directory.

    Read-only and safe to call on a directory that does not exist yet.

    Args:
        package_dir: Package directory

    Returns:
        ManifestResult; ``valid`` is False with a reason when the manifest is
        missing, empty, not a JSON object, or has no name
    """
    manifest_path = package_dir / MANIFEST_FILE
    if not manifest_path.is_file():
        return ManifestResult.invalid(REASON_MISSING)

    try:
        raw = manifest_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read manifest {manifest_path}: {e}")
        return ManifestResult.invalid(REASON_UNREADABLE)

    if raw.strip() == "":
        return ManifestResult.invalid(REASON_EMPTY)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return ManifestResult.invalid(REASON_NOT_OBJECT)
    if not isinstance(data, dict):
        return ManifestResult.invalid(REASON_NOT_OBJECT)

    name = _text(data.get("name"))
    if name == "":
        return ManifestResult.invalid(REASON_MISSING_NAME)

    panel_path = _text(data.get("panel_path"))
    if panel_path and not is_valid_panel_path(panel_path):
        logger.debug(f"Discarding invalid panel_path in {manifest_path}")
        panel_path = ""

    homepage = _text(data.get("homepage"))
    if homepage and not is_valid_homepage(homepage):
        logger.debug(f"Discarding invalid homepage in {manifest_path}")
        homepage = ""

    return ManifestResult(
        valid=True,
        type=normalize_type(data.get("type", ExtensionType.BASIC.value)),
        panel_path=panel_path,
        panel_section=normalize_panel_section(_text(data.get("panel_section"))),
        name=name,
        version=_text(data.get("version")),
        description=_text(data.get("description")),
        author=_text(data.get("author")),
        homepage=homepage,
    )
