# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Install extension packages from uploaded ZIP archives."""

import logging
import shutil
import zipfile
import zlib
from collections.abc import Iterable
from pathlib import Path

from src.extensions.base import MANIFEST_FILE, InstallStage, UploadedArchive
from src.extensions.errors import (
    EmptyArchive,
    EmptyResult,
    ExtractionFailed,
    FilesystemError,
    InvalidExtension,
    InvalidManifest,
    InvalidName,
    NameCollision,
    SizeOutOfBounds,
    UnreadableArchive,
    UnsafeEntryPath,
)
from src.extensions.fs import make_private_dir, remove_tree
from src.extensions.manifest import read_manifest
from src.extensions.path_safety import (
    derive_name_from_archive_filename,
    is_safe_archive_entry_path,
)

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"
MIB = 1024 * 1024
MAX_ARCHIVE_BYTES = 50 * MIB
MAX_EXTRACTED_BYTES = 200 * MIB


def format_size_limit(limit: int) -> str:
    """Render a byte limit in MiB when it is a whole number of MiB."""
    if limit >= MIB and limit % MIB == 0:
        return f"{limit // MIB} MiB"
    return f"{limit} bytes"


class ArchiveInstaller:
    """Extracts one uploaded archive into a fresh package directory.

    Either the package ends up fully extracted with a valid manifest, or
    the target directory is removed again before the error propagates.
    """

    def __init__(
        self,
        root: Path,
        reserved_names: Iterable[str] = (),
        max_archive_bytes: int = MAX_ARCHIVE_BYTES,
        max_extracted_bytes: int = MAX_EXTRACTED_BYTES,
    ) -> None:
        self.root = root
        self.reserved_names = frozenset(reserved_names)
        self.max_archive_bytes = max_archive_bytes
        self.max_extracted_bytes = max_extracted_bytes

    def check_preconditions(self, upload: UploadedArchive) -> str:
        """Validate an upload before touching the filesystem.

        Returns:
            Derived package directory name

        Raises:
            InvalidExtension, SizeOutOfBounds, InvalidName, NameCollision
        """
        if not upload.filename or not upload.filename.lower().endswith(ARCHIVE_SUFFIX):
            raise InvalidExtension("Uploaded file must be a .zip archive.")

        if upload.size <= 0 or upload.size > self.max_archive_bytes:
            limit = format_size_limit(self.max_archive_bytes)
            raise SizeOutOfBounds(f"Archive must be between 1 byte and {limit}.")

        name = derive_name_from_archive_filename(upload.filename)
        if name is None:
            raise InvalidName("Could not derive a safe extension name from the archive filename.")

        if name in self.reserved_names:
            raise NameCollision(f"Extension name '{name}' is reserved.")
        if (self.root / name).exists():
            raise NameCollision(f"Extension '{name}' already exists.")
        return name

    def install(self, upload: UploadedArchive) -> str:
        """Extract and validate an uploaded archive.

        Args:
            upload: The submitted archive

        Returns:
            Directory name of the newly installed package

        Raises:
            ExtensionError: One of the installer error kinds; no package
                directory is left behind
        """
        stage = InstallStage.RECEIVED
        name = self.check_preconditions(upload)
        target = self.root / name
        logger.debug(f"Installing archive as {name}: {stage.value}")

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            make_private_dir(target)
        except FileExistsError as e:
            raise NameCollision(f"Extension '{name}' already exists.") from e
        except OSError as e:
            logger.error(f"Could not create extension directory {target}: {e}")
            raise FilesystemError("Extension directory could not be created.") from e

        stage = InstallStage.DIRECTORY_CREATED
        logger.debug(f"Installing archive as {name}: {stage.value}")
        try:
            self._extract(upload, target)
            stage = InstallStage.EXTRACTED
            logger.debug(f"Installing archive as {name}: {stage.value}")

            self._flatten_wrapper_directory(target)
            if not any(target.iterdir()):
                raise EmptyResult("Archive did not contain any files.")

            manifest = read_manifest(target)
            if not manifest.valid:
                raise InvalidManifest(manifest.invalid_reason)
            stage = InstallStage.VALIDATED
            logger.debug(f"Installing archive as {name}: {stage.value}")
        except Exception:
            self.rollback(target, stage)
            raise

        logger.info(f"Extracted extension {name} ({manifest.name})")
        return name

    def rollback(self, target: Path, stage: InstallStage) -> None:
        """Remove a partially installed package directory."""
        logger.warning(f"Rolling back extension install at {target.name} from stage {stage.value}")
        if remove_tree(target):
            logger.debug(f"Installing archive as {target.name}: {InstallStage.REMOVED.value}")

    def _extract(self, upload: UploadedArchive, target: Path) -> None:
        try:
            upload.stream.seek(0)
            archive = zipfile.ZipFile(upload.stream)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError, EOFError) as e:
            raise UnreadableArchive("Archive could not be read.") from e

        with archive:
            entries = archive.infolist()
            if not entries:
                raise EmptyArchive("Archive is empty.")

            # Every entry is checked before the first one is written.
            for entry in entries:
                if not is_safe_archive_entry_path(entry.filename):
                    raise UnsafeEntryPath("Archive contains an unsafe file path.")

            declared = sum(entry.file_size for entry in entries)
            if declared > self.max_extracted_bytes:
                limit = format_size_limit(self.max_extracted_bytes)
                raise SizeOutOfBounds(f"Extracted archive content exceeds {limit}.")

            try:
                archive.extractall(target)
            except (
                zipfile.BadZipFile,
                zlib.error,
                RuntimeError,
                NotImplementedError,
                OSError,
                EOFError,
            ) as e:
                logger.warning(f"Extraction into {target.name} failed: {e}")
                raise ExtractionFailed("Archive could not be extracted.") from e

    def _flatten_wrapper_directory(self, target: Path) -> None:
        """Hoist a single top-level folder that holds the manifest.

        Archives built by zipping a folder wrap everything in one directory;
        the package root must hold ``extension.json`` itself.
        """
        if (target / MANIFEST_FILE).exists():
            return

        children = [child for child in target.iterdir() if not child.name.startswith(".")]
        if len(children) != 1 or not children[0].is_dir() or children[0].is_symlink():
            return

        wrapper = children[0]
        if not (wrapper / MANIFEST_FILE).is_file():
            return

        staging = target / f".{wrapper.name}.unwrap"
        try:
            wrapper.rename(staging)
            for item in staging.iterdir():
                shutil.move(str(item), str(target / item.name))
            staging.rmdir()
        except OSError as e:
            raise ExtractionFailed("Archive could not be extracted.") from e
        logger.debug(f"Flattened wrapper directory in {target.name}")


