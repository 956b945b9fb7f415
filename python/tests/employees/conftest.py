# -*- encoding: utf-8 -*-
"""
Shared fixtures: swap the Pyodide FFI helpers for pass-through doubles and
hand each test a fresh in-memory IndexedDB factory.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from fakeidb import FakeIDBFactory, FakeProxy, fake_to_js
from funcionarios import feedback, indexeddb_python, ui_log


@pytest.fixture(autouse=True)
def pyodide_ffi(monkeypatch):
    monkeypatch.setattr(indexeddb_python, "create_proxy", FakeProxy)
    monkeypatch.setattr(indexeddb_python, "to_js", fake_to_js)
    monkeypatch.setattr(indexeddb_python, "Object", SimpleNamespace(fromEntries=dict))
    monkeypatch.setattr(indexeddb_python, "indexedDB", None)
    FakeProxy.live = 0
    yield


@pytest.fixture(autouse=True)
def log_entries():
    entries = []
    ui_log.set_sinks(entry_sink=entries.append)
    yield entries
    ui_log.clear_sinks()


@pytest.fixture
def factory():
    return FakeIDBFactory()


@pytest.fixture(autouse=True)
def messages():
    """Feedback (message, kind) pairs emitted by a store."""
    collected = []
    feedback.set_sink(lambda message, kind: collected.append((message, kind)))
    yield collected
    feedback.clear_sink()


ANA = {
    "nome": "Ana Silva",
    "cpf": "123.456.789-00",
    "email": "ana@x.com",
    "telefone": "11999999999",
    "data_nascimento": "1990-01-01",
    "cargo": "Dev",
}

BRUNO = {
    "nome": "Bruno Costa",
    "cpf": "987.654.321-00",
    "email": "bruno@empresa.com.br",
    "telefone": "21988887777",
    "data_nascimento": "1985-06-15",
    "cargo": "Gerente",
}


@pytest.fixture
def ana():
    return dict(ANA)


@pytest.fixture
def bruno():
    return dict(BRUNO)
