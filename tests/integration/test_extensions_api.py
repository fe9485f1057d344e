# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Integration tests for extension manager API endpoints."""

import json

import pytest

from src.extensions.base import MANIFEST_FILE
from src.extensions.state import STATE_FILE
from tests.helpers import build_zip, write_package

BASE_URL = "/api/v1/extensions"
VALID = {"name": "Gallery", "version": "1.0.0"}


def _zip_file(filename, entries):
    return {"file": (filename, build_zip(entries), "application/zip")}


class TestExtensionAccess:
    """Tests for access control on extension endpoints."""

    def test_requires_authentication(self, client):
        """Test that endpoints require an authenticated caller."""
        response = client.get(BASE_URL)
        assert response.status_code == 401

    def test_requires_configuration_permission(self, editor_client):
        """Test that callers without Manage System Configuration are refused."""
        response = editor_client.get(BASE_URL)
        assert response.status_code == 403

    def test_refused_caller_cannot_mutate(self, editor_client, extensions_root):
        """Test that a refused caller leaves the package untouched."""
        write_package(extensions_root, "gallery", VALID)

        response = editor_client.delete(f"{BASE_URL}/gallery")

        assert response.status_code == 403
        assert (extensions_root / "gallery").is_dir()


class TestExtensionListEndpoint:
    """Tests for GET /api/v1/extensions endpoint."""

    def test_list_empty(self, admin_client):
        """Test listing when no extensions are installed."""
        response = admin_client.get(BASE_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["extensions"] == []
        assert [option["value"] for option in data["permission_options"]] == [1, 2, 4, 8, 16, 64]

    def test_list_with_extensions(self, admin_client, extensions_root):
        """Test listing valid and invalid packages in natural order."""
        write_package(extensions_root, "ext10", VALID)
        write_package(extensions_root, "ext2", None)

        response = admin_client.get(BASE_URL)

        assert response.status_code == 200
        extensions = response.json()["extensions"]
        assert [item["directory"] for item in extensions] == ["ext2", "ext10"]
        assert extensions[0]["valid"] is False
        assert extensions[0]["invalid_reason"] == f"{MANIFEST_FILE} is missing."
        assert extensions[1]["valid"] is True
        assert extensions[1]["required_permission"] == 1

    def test_get_single_extension(self, admin_client, extensions_root):
        """Test fetching one extension."""
        write_package(extensions_root, "gallery", VALID)

        response = admin_client.get(f"{BASE_URL}/gallery")

        assert response.status_code == 200
        assert response.json()["name"] == "Gallery"

    def test_get_missing_extension(self, admin_client):
        """Test fetching an unknown extension."""
        response = admin_client.get(f"{BASE_URL}/ghost")

        assert response.status_code == 404
        assert response.json()["code"] == "NotFound"


class TestExtensionUploadEndpoint:
    """Tests for POST /api/v1/extensions/upload endpoint."""

    def test_upload_success(self, admin_client, extensions_root):
        """Test installing an uploaded archive."""
        response = admin_client.post(
            f"{BASE_URL}/upload",
            files=_zip_file("My Cool Tool v2.zip", {MANIFEST_FILE: json.dumps(VALID)}),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["extension"]["directory"] == "my-cool-tool"
        assert data["extension"]["enabled"] is False
        assert (extensions_root / "my-cool-tool" / MANIFEST_FILE).is_file()

    def test_upload_traversal_is_rejected(self, admin_client, extensions_root):
        """Test that an unsafe archive is refused and leaves nothing behind."""
        response = admin_client.post(
            f"{BASE_URL}/upload",
            files=_zip_file(
                "evil.zip", {MANIFEST_FILE: json.dumps(VALID), "../../etc/passwd": "x"}
            ),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "UnsafeEntryPath"
        assert not (extensions_root / "evil").exists()

    def test_upload_non_zip(self, admin_client):
        """Test that non-ZIP uploads are refused."""
        response = admin_client.post(
            f"{BASE_URL}/upload",
            files={"file": ("tool.tar.gz", b"not a zip", "application/gzip")},
        )

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Uploaded file must be a .zip archive.",
            "code": "InvalidExtension",
        }

    def test_upload_invalid_manifest(self, admin_client, extensions_root):
        """Test that the manifest reason is reported and the package rolled back."""
        response = admin_client.post(
            f"{BASE_URL}/upload",
            files=_zip_file("notes.zip", {"readme.txt": "hello"}),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidManifest"
        assert response.json()["detail"] == f"{MANIFEST_FILE} is missing."
        assert not (extensions_root / "notes").exists()

    def test_upload_collision(self, admin_client, extensions_root):
        """Test that uploads never overwrite an existing package."""
        write_package(extensions_root, "gallery", VALID)

        response = admin_client.post(
            f"{BASE_URL}/upload",
            files=_zip_file("gallery.zip", {MANIFEST_FILE: json.dumps(VALID)}),
        )

        assert response.status_code == 409
        assert response.json()["code"] == "NameCollision"


class TestExtensionCreateEndpoint:
    """Tests for POST /api/v1/extensions/create endpoint."""

    def test_create_success(self, admin_client, extensions_root):
        """Test scaffolding a new extension."""
        response = admin_client.post(
            f"{BASE_URL}/create",
            json={"directory": "report-tool", "name": "Report Tool", "author": "Jane"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["extension"]["name"] == "Report Tool"
        assert data["extension"]["author"] == "Jane"
        assert data["extension"]["enabled"] is False
        assert (extensions_root / "report-tool" / "panel_routes.py").is_file()
        assert (extensions_root / "report-tool" / "AGENTS.md").is_file()

    def test_create_without_guidance(self, admin_client, extensions_root):
        """Test opting out of the guidance document."""
        response = admin_client.post(
            f"{BASE_URL}/create",
            json={"directory": "quiet", "name": "Quiet", "generate_guidance": False},
        )

        assert response.status_code == 201
        assert not (extensions_root / "quiet" / "AGENTS.md").exists()

    def test_create_stock_name(self, admin_client, extensions_root):
        """Test that stock names are reserved."""
        response = admin_client.post(
            f"{BASE_URL}/create",
            json={"directory": "reserved-stock-name", "name": "Mine"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "StockProtected"
        assert not (extensions_root / "reserved-stock-name").exists()

    def test_create_invalid_directory(self, admin_client):
        """Test that unsafe directory names are refused."""
        response = admin_client.post(
            f"{BASE_URL}/create",
            json={"directory": "../escape", "name": "Escape"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidName"

    def test_overlong_field_is_refused_without_echo(self, admin_client):
        """Test that an overlong field gets the error shape and is not echoed back."""
        response = admin_client.post(
            f"{BASE_URL}/create",
            json={"directory": "a" * 130, "name": "Long"},
        )

        assert response.status_code == 422
        data = response.json()
        assert set(data) == {"detail", "code"}
        assert data["code"] == "ValidationError"
        assert data["detail"].startswith("directory:")
        assert "aaaa" not in response.text

    def test_missing_field_is_refused(self, admin_client):
        """Test that a missing required field names the field."""
        response = admin_client.post(f"{BASE_URL}/create", json={"directory": "report"})

        assert response.status_code == 422
        assert response.json()["detail"].startswith("name:")


class TestExtensionToggleEndpoints:
    """Tests for enable/disable endpoints."""

    def test_enable_and_disable(self, admin_client, extensions_root):
        """Test toggling an extension on and off."""
        write_package(extensions_root, "gallery", VALID)

        response = admin_client.post(f"{BASE_URL}/gallery/enable")
        assert response.status_code == 200
        assert response.json()["extension"]["enabled"] is True
        assert response.json()["extension"]["can_delete"] is False

        response = admin_client.post(f"{BASE_URL}/gallery/disable")
        assert response.status_code == 200
        assert response.json()["extension"]["enabled"] is False

    def test_enable_invalid_extension(self, admin_client, extensions_root):
        """Test that an invalid extension cannot be enabled."""
        write_package(extensions_root, "broken", "{oops")

        response = admin_client.post(f"{BASE_URL}/broken/enable")

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidManifest"

    def test_enable_missing_extension(self, admin_client):
        """Test enabling an unknown extension."""
        response = admin_client.post(f"{BASE_URL}/ghost/enable")

        assert response.status_code == 404


class TestExtensionPermissionEndpoint:
    """Tests for PUT /api/v1/extensions/{name}/permission endpoint."""

    def test_assign_permission(self, admin_client, extensions_root):
        """Test assigning a permission bit."""
        write_package(extensions_root, "gallery", VALID)

        response = admin_client.put(f"{BASE_URL}/gallery/permission", json={"permission": 4})

        assert response.status_code == 200
        assert response.json()["extension"]["required_permission"] == 4

    def test_invalid_bit_keeps_assignment(self, admin_client, extensions_root):
        """Test that an unknown bit is refused and the old value stays."""
        write_package(extensions_root, "gallery", VALID)
        admin_client.put(f"{BASE_URL}/gallery/permission", json={"permission": 4})

        response = admin_client.put(f"{BASE_URL}/gallery/permission", json={"permission": 3})

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidPermission"
        state = json.loads((extensions_root / STATE_FILE).read_text(encoding="utf-8"))
        assert state["permissions"] == {"gallery": 4}

    def test_system_extension(self, admin_client, extensions_root):
        """Test that system extensions cannot be gated."""
        write_package(extensions_root, "core", {"name": "Core", "type": "system"})

        response = admin_client.put(f"{BASE_URL}/core/permission", json={"permission": 4})

        assert response.status_code == 400
        assert response.json()["code"] == "PermissionNotApplicable"


class TestExtensionDeleteEndpoint:
    """Tests for DELETE /api/v1/extensions/{name} endpoint."""

    def test_delete_success(self, admin_client, extensions_root):
        """Test deleting a disabled extension."""
        write_package(extensions_root, "gallery", VALID)

        response = admin_client.delete(f"{BASE_URL}/gallery")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "directory": "gallery",
            "message": "Extension gallery deleted.",
        }
        assert not (extensions_root / "gallery").exists()

    def test_delete_enabled(self, admin_client, extensions_root):
        """Test that enabled extensions must be disabled first."""
        write_package(extensions_root, "gallery", VALID)
        admin_client.post(f"{BASE_URL}/gallery/enable")

        response = admin_client.delete(f"{BASE_URL}/gallery")

        assert response.status_code == 409
        assert response.json()["code"] == "MustDisableFirst"
        assert (extensions_root / "gallery").is_dir()

    def test_delete_stock(self, admin_client, extensions_root):
        """Test that stock extensions are protected."""
        write_package(extensions_root, "database", VALID)

        response = admin_client.delete(f"{BASE_URL}/database")

        assert response.status_code == 409
        assert response.json()["code"] == "StockProtected"

    @pytest.mark.parametrize("name", ["bad name", "-dash"])
    def test_delete_invalid_name(self, admin_client, name):
        """Test that unsafe names are refused."""
        response = admin_client.delete(f"{BASE_URL}/{name}")

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidName"


class TestPanelNavigationEndpoint:
    """Tests for GET /api/v1/panel/navigation endpoint."""

    def test_requires_authentication(self, client):
        """Test that navigation needs a resolved session."""
        response = client.get("/api/v1/panel/navigation")
        assert response.status_code == 401

    def test_lists_what_the_caller_may_see(self, editor_client, extensions_root):
        """Test gating for a caller without Manage System Configuration."""
        write_package(extensions_root, "blog", {"name": "Blog"})
        write_package(extensions_root, "users", {"name": "User Tools"})
        write_package(extensions_root, "core", {"name": "Core", "type": "system"})
        (extensions_root / STATE_FILE).write_text(
            json.dumps(
                {
                    "enabled": {"blog": True, "users": True, "core": True},
                    "permissions": {"users": 4},
                }
            ),
            encoding="utf-8",
        )

        response = editor_client.get("/api/v1/panel/navigation")

        assert response.status_code == 200
        data = response.json()
        assert data["extensions"] == [
            {"directory": "blog", "label": "Blog", "path": "/blog", "section": "blog"}
        ]
        assert [item["directory"] for item in data["system_extensions"]] == ["core"]


class TestHealthEndpoint:
    """Tests for the health check."""

    def test_health(self, client):
        """Test that the health check needs no authentication."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
