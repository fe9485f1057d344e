# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app
os.environ["EXTENSIONS_ROOT"] = tempfile.mkdtemp(prefix="ext-root-")
os.environ["EXTENSIONS_LOG_LEVEL"] = "DEBUG"

from src.api.deps import get_manager, get_permission_mask
from src.extensions import LifecycleManager
from src.extensions.permissions import PanelPermission
from src.main import app
from tests.helpers import TEST_STOCK_NAMES


@pytest.fixture
def extensions_root(tmp_path) -> Path:
    """Create a temporary extensions root."""
    root = tmp_path / "ext"
    root.mkdir()
    return root


@pytest.fixture
def manager(extensions_root) -> LifecycleManager:
    """Create a LifecycleManager over the temporary root."""
    return LifecycleManager(extensions_root, stock_names=TEST_STOCK_NAMES)


@pytest.fixture(scope="function")
def client(manager):
    """Create a test client bound to the temporary extensions root."""
    app.dependency_overrides[get_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    """Create a client whose caller holds Manage System Configuration."""
    app.dependency_overrides[get_permission_mask] = lambda: int(
        PanelPermission.PANEL_LOGIN | PanelPermission.MANAGE_CONFIGURATION
    )
    return client


@pytest.fixture
def editor_client(client):
    """Create a client whose caller can log in but not manage configuration."""
    app.dependency_overrides[get_permission_mask] = lambda: int(
        PanelPermission.PANEL_LOGIN | PanelPermission.MANAGE_CONTENT
    )
    return client
