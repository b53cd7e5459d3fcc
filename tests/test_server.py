"""Tests for the HTTP boundary and static asset serving."""

import json
import os
import re

import pytest
from fastapi.testclient import TestClient

from securepass import server
from securepass.config import Settings
from securepass.generator import InternalInvariantError
from securepass.server import API_PATH, create_app, parse_payload, resolve_static_path

ALL_CLASSES = {
    "length": 20,
    "includeLowercase": True,
    "includeUppercase": True,
    "includeNumbers": True,
    "includeSymbols": True,
}


@pytest.fixture
def static_root(tmp_path):
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_text("<h1>root index</h1>")
    (root / "app.js").write_text("console.log('app');")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_text("<h1>docs index</h1>")
    (root / "empty").mkdir()
    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def client(static_root):
    return TestClient(create_app(Settings(static_dir=str(static_root))))


class TestPasswordEndpoint:

    def test_generates_password(self, client):
        response = client.post(API_PATH, json=ALL_CLASSES)
        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        assert len(response.json()["password"]) == 20

    def test_lowercase_only(self, client):
        response = client.post(API_PATH, json={"length": 12, "includeLowercase": True})
        assert response.status_code == 200
        assert re.fullmatch(r"[a-z]{12}", response.json()["password"])

    def test_exclude_similar(self, client):
        payload = dict(ALL_CLASSES, length=128, excludeSimilar=True)
        password = client.post(API_PATH, json=payload).json()["password"]
        assert not set(password) & set("iloILO01")

    def test_malformed_length_falls_back_to_minimum(self, client):
        response = client.post(API_PATH, json={"length": "lots", "includeNumbers": True})
        assert response.status_code == 200
        assert re.fullmatch(r"[0-9]{4}", response.json()["password"])

    def test_length_is_clamped_to_maximum(self, client):
        response = client.post(API_PATH, json=dict(ALL_CLASSES, length=5000))
        assert len(response.json()["password"]) == 128

    def test_no_class_selected(self, client):
        response = client.post(API_PATH, json={"length": 10})
        assert response.status_code == 400
        assert response.json() == {"error": "At least one character set must be selected."}

    def test_empty_body(self, client):
        response = client.post(API_PATH)
        assert response.status_code == 400
        assert response.json() == {"error": "At least one character set must be selected."}

    def test_invalid_json(self, client):
        response = client.post(API_PATH, content=b"{not json",
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be valid JSON."}

    def test_non_object_json_is_treated_as_empty(self, client):
        response = client.post(API_PATH, json=[1, 2, 3])
        assert response.status_code == 400
        assert "At least one character set" in response.json()["error"]

    def test_body_over_default_ceiling(self, client):
        body = b" " * 1_000_001
        response = client.post(API_PATH, content=body)
        assert response.status_code == 413
        assert response.json() == {"error": "Request body too large."}

    def test_body_at_ceiling_is_read(self, static_root):
        payload = json.dumps(ALL_CLASSES).encode()
        limit = len(payload)
        client = TestClient(create_app(Settings(static_dir=str(static_root), max_body_bytes=limit)))

        assert client.post(API_PATH, content=payload).status_code == 200
        assert client.post(API_PATH, content=payload + b" ").status_code == 413

    def test_internal_invariant_error_is_a_server_error(self, client, monkeypatch):
        def broken(config):
            raise InternalInvariantError("Character pool must contain at least one character.")

        monkeypatch.setattr(server, "generate", broken)
        response = client.post(API_PATH, json=ALL_CLASSES)
        assert response.status_code == 500
        assert response.json() == {"error": "Unable to generate password."}

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_method_not_allowed(self, client, method):
        response = client.request(method, API_PATH)
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed."}
        assert response.headers["allow"] == "POST, OPTIONS"

    def test_plain_options(self, client):
        response = client.options(API_PATH)
        assert response.status_code == 204

    def test_cors_preflight(self, client):
        response = client.options(API_PATH, headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        })
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_cors_header_on_response(self, client):
        response = client.post(API_PATH, json=ALL_CLASSES, headers={"Origin": "https://example.com"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestStaticAssets:

    def test_root_serves_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "root index" in response.text

    def test_serves_file(self, client):
        response = client.get("/app.js")
        assert response.status_code == 200
        assert "console.log" in response.text

    def test_unknown_path_falls_back_to_index(self, client):
        response = client.get("/some/client/route")
        assert response.status_code == 200
        assert "root index" in response.text

    def test_directory_serves_its_index(self, client):
        assert "docs index" in client.get("/docs").text

    def test_directory_without_index(self, client):
        response = client.get("/empty")
        assert response.status_code == 404
        assert response.text == "404 Not Found"

    def test_traversal_is_forbidden(self, client):
        response = client.get("/..%2Fsecret.txt")
        assert response.status_code == 403
        assert response.text == "403 Forbidden"

    def test_nul_byte_is_forbidden(self, client):
        response = client.get("/%00")
        assert response.status_code == 403

    def test_head_requests(self, client):
        assert client.head("/").status_code == 200
        response = client.head("/app.js")
        assert response.status_code == 200
        assert response.content == b""

    def test_missing_index(self, tmp_path):
        client = TestClient(create_app(Settings(static_dir=str(tmp_path))))
        assert client.get("/").status_code == 404

    def test_packaged_client_is_served(self):
        client = TestClient(create_app(Settings()))
        response = client.get("/")
        assert response.status_code == 200
        assert "password-form" in response.text


class TestHelpers:

    def test_parse_payload(self):
        assert parse_payload(b"") == {}
        assert parse_payload(b"  \n") == {}
        assert parse_payload(b'{"length": 8}') == {"length": 8}
        assert parse_payload(b'"text"') == {}

    def test_parse_payload_invalid(self):
        with pytest.raises(ValueError):
            parse_payload(b"{")
        with pytest.raises(ValueError):
            parse_payload(b"\xff\xfe")

    def test_resolve_static_path(self, static_root):
        root = str(static_root)
        real_root = os.path.realpath(root)
        assert resolve_static_path(root, "") == os.path.join(real_root, "index.html")
        assert resolve_static_path(root, "app.js") == os.path.join(real_root, "app.js")
        assert resolve_static_path(root, "nope.css") == os.path.join(real_root, "index.html")
        assert resolve_static_path(root, "../secret.txt") is None
        assert resolve_static_path(root, "docs/../../secret.txt") is None
        assert resolve_static_path(root, "app\x00.js") is None
