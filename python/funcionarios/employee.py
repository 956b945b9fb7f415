# -*- encoding: utf-8 -*-
"""
employee.py - Employee record as stored in the "funcionarios" collection.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

# User-supplied fields, in form order
REQUIRED_FIELDS = (
    "nome",
    "cpf",
    "email",
    "telefone",
    "data_nascimento",
    "cargo",
)


@dataclass(frozen=True)
class Employee:
    id: Optional[int]
    nome: str
    cpf: str
    email: str
    telefone: str
    data_nascimento: str
    cargo: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Employee":
        """Build an Employee from a stored record (extra keys are ignored)."""
        raw_id = record.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            **{field: str(record.get(field) or "") for field in REQUIRED_FIELDS},
        )

    def to_record(self) -> dict:
        """Return the plain dict written to the store. Unsaved records omit id."""
        record = asdict(self)
        if record["id"] is None:
            del record["id"]
        return record
