# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Generate a minimal, valid extension package from panel input."""

import html
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from src.extensions.base import (
    MANIFEST_FILE,
    ROUTES_FILE,
    VIEWS_DIR,
    ExtensionType,
    ScaffoldFields,
)
from src.extensions.errors import (
    FilesystemError,
    InvalidManifest,
    InvalidName,
    NameCollision,
    StockProtected,
    ValidationError,
)
from src.extensions.fs import make_private_dir, remove_tree, write_private_file
from src.extensions.manifest import (
    is_valid_homepage,
    is_valid_panel_path,
    normalize_panel_section,
    normalize_type,
    read_manifest,
)
from src.extensions.path_safety import is_safe_directory_name

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "0.1.0"
VIEW_FILE = "panel_index.html"
GUIDANCE_FILE = "AGENTS.md"

MAX_NAME_LENGTH = 120
MAX_VERSION_LENGTH = 80
MAX_AUTHOR_LENGTH = 120
MAX_HOMEPAGE_LENGTH = 400
MAX_DESCRIPTION_LENGTH = 1000


@dataclass
class ScaffoldPlan:
    """Normalized scaffold values, ready to be written."""

    directory: str
    name: str
    version: str
    description: str
    type: ExtensionType
    author: str
    homepage: str
    panel_path: str
    panel_section: str
    generate_guidance: bool

    def manifest(self) -> dict[str, str]:
        data = {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "type": self.type.value,
            "author": self.author,
            "homepage": self.homepage,
            "panel_path": self.panel_path,
            "panel_section": self.panel_section,
        }
        return {key: value for key, value in data.items() if value != ""}


def _check_length(label: str, value: str, limit: int) -> None:
    if len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters.")


class ScaffoldGenerator:
    """Creates new extension packages under the extensions root."""

    def __init__(self, root: Path, stock_names: Iterable[str] = ()) -> None:
        self.root = root
        self.stock_names = frozenset(stock_names)

    def plan(self, fields: ScaffoldFields) -> ScaffoldPlan:
        """Validate and normalize operator input without writing anything.

        Raises:
            InvalidName, StockProtected, NameCollision, ValidationError
        """
        directory = fields.directory.strip()
        if not is_safe_directory_name(directory):
            raise InvalidName(
                "Directory name must start with a letter or digit and contain only "
                "letters, digits, underscores, and dashes (max 120)."
            )
        if directory in self.stock_names:
            raise StockProtected(f"'{directory}' is reserved for a stock extension.")
        if (self.root / directory).exists():
            raise NameCollision(f"Extension '{directory}' already exists.")

        name = fields.name.strip()
        if name == "":
            raise ValidationError("Extension name is required.")
        _check_length("Extension name", name, MAX_NAME_LENGTH)

        version = fields.version.strip() or DEFAULT_VERSION
        _check_length("Version", version, MAX_VERSION_LENGTH)

        author = fields.author.strip()
        _check_length("Author", author, MAX_AUTHOR_LENGTH)

        description = fields.description.strip()
        _check_length("Description", description, MAX_DESCRIPTION_LENGTH)

        homepage = fields.homepage.strip()
        _check_length("Homepage", homepage, MAX_HOMEPAGE_LENGTH)
        if homepage and not is_valid_homepage(homepage):
            raise ValidationError("Homepage must be an absolute http or https URL.")

        panel_path = fields.panel_path.strip().strip("/") or directory
        if not is_valid_panel_path(panel_path):
            raise ValidationError(
                "Panel path may only contain letters, digits, underscores, dashes, and slashes."
            )

        panel_section = normalize_panel_section(fields.panel_section.strip() or panel_path)
        if panel_section == "":
            panel_section = normalize_panel_section(directory)

        return ScaffoldPlan(
            directory=directory,
            name=name,
            version=version,
            description=description,
            type=normalize_type(fields.type),
            author=author,
            homepage=homepage,
            panel_path=panel_path,
            panel_section=panel_section,
            generate_guidance=fields.generate_guidance,
        )

    def create(self, fields: ScaffoldFields) -> str:
        """Validate input and write a complete package, all or nothing.

        Args:
            fields: Operator-supplied scaffold values

        Returns:
            Directory name of the new package

        Raises:
            ValidationError: Input rejected before any write
            FilesystemError: A write failed; the partial package was removed
        """
        plan = self.plan(fields)
        target = self.root / plan.directory

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            make_private_dir(target)
        except FileExistsError as e:
            raise NameCollision(f"Extension '{plan.directory}' already exists.") from e
        except OSError as e:
            logger.error(f"Could not create extension directory {target}: {e}")
            raise FilesystemError("Extension directory could not be created.") from e

        try:
            make_private_dir(target / VIEWS_DIR)
            write_private_file(
                target / MANIFEST_FILE,
                json.dumps(plan.manifest(), indent=2, ensure_ascii=False) + "\n",
            )
            write_private_file(target / ROUTES_FILE, render_routes(plan))
            write_private_file(target / VIEWS_DIR / VIEW_FILE, render_view(plan))
            if plan.generate_guidance:
                write_private_file(target / GUIDANCE_FILE, render_guidance(plan))
        except OSError as e:
            logger.error(f"Scaffold write failed for {plan.directory}: {e}")
            remove_tree(target)
            raise FilesystemError("Extension files could not be written.") from e

        manifest = read_manifest(target)
        if not manifest.valid:
            remove_tree(target)
            raise InvalidManifest(manifest.invalid_reason)

        logger.info(f"Created extension scaffold {plan.directory}")
        return plan.directory


def render_routes(plan: ScaffoldPlan) -> str:
    """Route-registration stub; values are embedded as Python literals."""
    return f'''# Generated extension scaffold route registrar.
"""Panel routes for the {plan.directory} extension."""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

EXTENSION_DIRECTORY = {plan.directory!r}
EXTENSION_NAME = {plan.name!r}
PANEL_PATH = {plan.panel_path!r}
PANEL_SECTION = {plan.panel_section!r}
VIEW_FILE = Path(__file__).parent / {VIEWS_DIR!r} / {VIEW_FILE!r}


def register(router: APIRouter, context: dict) -> None:
    """Register this extension's panel routes on the host router."""
    dependencies = context.get("dependencies", [])

    @router.get("/" + PANEL_PATH, response_class=HTMLResponse, dependencies=dependencies)
    def panel_index() -> str:
        return VIEW_FILE.read_text(encoding="utf-8")
'''


def render_view(plan: ScaffoldPlan) -> str:
    """View-template stub; values are HTML-escaped."""
    description = html.escape(plan.description or "This extension has no description yet.")
    return f"""<section class="card" data-section="{html.escape(plan.panel_section)}">
    <div class="card-body">
        <h1>{html.escape(plan.name)}</h1>
        <p>{description}</p>
        <p class="text-muted mb-0">Version {html.escape(plan.version)}</p>
    </div>
</section>
"""


def render_guidance(plan: ScaffoldPlan) -> str:
    return f"""# {plan.name}

Extension directory: `{plan.directory}`

- `{MANIFEST_FILE}` declares the extension metadata. `name` is required.
- `{ROUTES_FILE}` exposes `register(router, context)`; the host calls it only
  while the extension is enabled.
- `{VIEWS_DIR}/{VIEW_FILE}` is the panel page template.

The panel route is `/{plan.panel_path}`. Keep new files inside this directory.
"""
