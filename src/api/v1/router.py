# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from src.api.v1 import extensions, panel

api_router = APIRouter()

# Extension manager routes
api_router.include_router(extensions.router)
# Panel navigation routes
api_router.include_router(panel.router)
