# -*- encoding: utf-8 -*-
"""
config.py - Database layout and UI constants for the employee form.

Bump DB_VERSION whenever INDEXES changes; the upgrade hook reconciles the
collection's index set exactly once per version bump.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IndexSpec:
    """Secondary index declared on the employee collection."""

    name: str
    key_path: str
    unique: bool = False


DB_NAME = "FuncionariosDB"
DB_VERSION = 1
STORE_NAME = "funcionarios"
KEY_PATH = "id"

INDEXES = (
    IndexSpec("nome", "nome", unique=False),
    IndexSpec("cpf", "cpf", unique=True),
    IndexSpec("email", "email", unique=True),
    IndexSpec("telefone", "telefone", unique=True),
    IndexSpec("cargo", "cargo", unique=False),
)

# Feedback banner
FEEDBACK_ELEMENT_ID = "feedback-msg"
FEEDBACK_HIDE_SECONDS = 3.0

# Form wiring
FORM_SELECTOR = ".add_names"
LIST_SELECTOR = ".your_dates"
