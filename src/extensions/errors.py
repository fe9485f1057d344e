# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Error taxonomy for the extension lifecycle manager.

Every error carries an operator-safe ``message`` (never an internal path or
archive content) and a stable ``code`` the panel and tests can match on.
"""


class ExtensionError(Exception):
    """Base class for all extension lifecycle errors."""

    code = "ExtensionError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ExtensionError):
    """Bad identifier, shape, or request. Always recoverable."""

    code = "ValidationError"


class SecurityViolation(ExtensionError):
    """Unsafe archive content. Aborts the whole operation."""

    code = "SecurityViolation"


class StateIntegrityError(ExtensionError):
    """The state file could not be persisted."""

    code = "StateIntegrityError"


class FilesystemError(ExtensionError):
    """A directory could not be created, written, or removed."""

    code = "FilesystemError"


class InvalidName(ValidationError):
    code = "InvalidName"


class NotFound(ValidationError):
    code = "NotFound"


class InvalidExtension(ValidationError):
    code = "InvalidExtension"


class SizeOutOfBounds(ValidationError):
    code = "SizeOutOfBounds"


class NameCollision(ValidationError):
    code = "NameCollision"


class UnreadableArchive(ValidationError):
    code = "UnreadableArchive"


class EmptyArchive(ValidationError):
    code = "EmptyArchive"


class ExtractionFailed(ValidationError):
    code = "ExtractionFailed"


class EmptyResult(ValidationError):
    code = "EmptyResult"


class InvalidManifest(ValidationError):
    """Manifest validation failed; ``reason`` is shown to the operator."""

    code = "InvalidManifest"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StockProtected(ValidationError):
    code = "StockProtected"


class MustDisableFirst(ValidationError):
    code = "MustDisableFirst"


class InvalidPermission(ValidationError):
    code = "InvalidPermission"


class PermissionNotApplicable(ValidationError):
    code = "PermissionNotApplicable"


class UnsafeEntryPath(SecurityViolation):
    code = "UnsafeEntryPath"
