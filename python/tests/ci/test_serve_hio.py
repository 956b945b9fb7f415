# -*- encoding: utf-8 -*-
"""
test_serve_hio.py - dev server routing and headers.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

falcon_testing = pytest.importorskip("falcon.testing")
pytest.importorskip("hio")

ROOT = Path(__file__).resolve().parents[3]


@pytest.fixture(scope="module")
def client():
    spec = importlib.util.spec_from_file_location("serve_hio", ROOT / "serve_hio.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return falcon_testing.TestClient(module.create_app(str(ROOT)))


def test_root_redirects_to_form(client):
    result = client.simulate_get("/")
    assert result.status_code == 302
    assert result.headers["Location"].endswith("/index.html")


def test_isolation_headers_on_every_response(client):
    result = client.simulate_get("/")
    assert result.headers["Cross-Origin-Opener-Policy"] == "same-origin"
    assert result.headers["Cross-Origin-Embedder-Policy"] == "require-corp"


def test_python_sources_are_not_cached(client):
    result = client.simulate_get("/python/funcionarios/store.py")
    assert result.status_code == 200
    assert result.headers["Cache-Control"] == "no-store"
    assert "class EmployeeStore" in result.text
