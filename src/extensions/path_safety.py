# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Identifier and archive-entry path validation.

Pure functions, no I/O. ``is_safe_archive_entry_path`` is the only zip-slip
defense; callers must run it over every entry before extracting anything.
"""

import re

from slugify import slugify

MAX_DIRECTORY_NAME_LENGTH = 120

DIRECTORY_NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]{0,119}")

# Windows drive prefix such as "C:" or "c:/"
DRIVE_LETTER_PATTERN = re.compile(r"^[A-Za-z]:")

# Trailing version token on an archive stem: "v2", "-v1.2", "1.0.3".
# Bare numbers ("ext-10", "report-2024") are part of the name.
VERSION_SUFFIX_PATTERN = re.compile(r"[\s._-]+(?:v\d+(?:\.\d+)*|\d+(?:\.\d+)+)$", re.IGNORECASE)

# Characters slugify replaces with the separator; underscores survive
UNSAFE_SLUG_CHARS = r"[^-a-z0-9_]+"


def is_safe_directory_name(name: object) -> bool:
    """Return True when ``name`` can be used as a package directory name."""
    if not isinstance(name, str):
        return False
    return DIRECTORY_NAME_PATTERN.fullmatch(name) is not None


def is_safe_archive_entry_path(entry_path: object) -> bool:
    """Return True when an archive entry stays inside the extraction root.

    Backslashes count as separators. Empty segments (trailing slash on
    directory entries, doubled slashes) are skipped.
    """
    if not isinstance(entry_path, str) or entry_path == "":
        return False
    if "\x00" in entry_path:
        return False

    normalized = entry_path.replace("\\", "/")
    if normalized.startswith("/"):
        return False
    if DRIVE_LETTER_PATTERN.match(normalized):
        return False

    segments = [segment for segment in normalized.split("/") if segment != ""]
    if not segments:
        return False
    return all(segment not in (".", "..") for segment in segments)


def derive_name_from_archive_filename(filename: str) -> str | None:
    """Derive a package directory name from an uploaded archive filename.

    ``"My Cool Tool v2.zip"`` becomes ``"my-cool-tool"``. Returns None when
    nothing safe remains.
    """
    if not filename or "\x00" in filename:
        return None

    # Only the final path component counts; browsers may send full paths.
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    stem = base.rsplit(".", 1)[0] if "." in base else base
    stem = VERSION_SUFFIX_PATTERN.sub("", stem.strip())

    slug = slugify(
        stem,
        lowercase=True,
        separator="-",
        regex_pattern=UNSAFE_SLUG_CHARS,
        max_length=MAX_DIRECTORY_NAME_LENGTH,
    ).strip("-_")

    if not is_safe_directory_name(slug):
        return None
    return slug
