# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from src.api.v1.extensions import extension_error_handler, request_validation_error_handler
from src.config import get_settings
from src.extensions import ExtensionError, LifecycleManager

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup: make sure the extensions root exists and report what is active
    Path(settings.root).mkdir(parents=True, exist_ok=True)
    manager = LifecycleManager.from_settings(settings)
    try:
        enabled = manager.enabled_packages()
        logger.info(f"{len(enabled)} extensions enabled in {settings.root}")
    except ExtensionError as e:
        logger.error(f"Error reading extension state: {e}")

    yield

    logger.info("Shutting down extension manager...")


app = FastAPI(
    title="Extension Manager",
    description="Lifecycle management for panel extensions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(ExtensionError, extension_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include API router after it's created
from src.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
