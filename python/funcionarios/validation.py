# -*- encoding: utf-8 -*-
"""
validation.py - Local checks run before any employee data reaches the store.

Uniqueness of cpf/email/telefone is NOT checked here; the store's unique
indexes enforce it at write time.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from funcionarios.employee import REQUIRED_FIELDS
from funcionarios.errors import ValidationFailed

CPF_RE = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

REASON_REQUIRED = "required"
REASON_FORMAT = "invalid format"
REASON_IMMUTABLE = "immutable"
REASON_UNKNOWN = "unknown field"


def is_valid_cpf(cpf: str) -> bool:
    return bool(CPF_RE.match(cpf))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _require_mapping(raw: Any) -> None:
    if not isinstance(raw, Mapping):
        raise ValidationFailed("fields", REASON_FORMAT)


def _check_format(field: str, value: str) -> None:
    if field == "cpf" and not is_valid_cpf(value):
        raise ValidationFailed(field, REASON_FORMAT)
    if field == "email" and not is_valid_email(value):
        raise ValidationFailed(field, REASON_FORMAT)


def validate_new(raw: Mapping[str, Any]) -> dict:
    """
    Validate a full employee submission.

    Every required field must be present and non-blank; presence is checked
    for all fields before any format check, the same order the form reports
    errors in.

    Returns:
        dict of trimmed field values

    Raises:
        ValidationFailed: first failing field, or ``fields`` when raw is not
            a mapping
    """
    _require_mapping(raw)
    cleaned = {field: _clean(raw.get(field)) for field in REQUIRED_FIELDS}
    for field in REQUIRED_FIELDS:
        if not cleaned[field]:
            raise ValidationFailed(field, REASON_REQUIRED)
    for field in REQUIRED_FIELDS:
        _check_format(field, cleaned[field])
    return cleaned


def validate_partial(raw: Mapping[str, Any]) -> dict:
    """
    Validate the fields supplied to an update.

    Omitted fields are left alone; supplied fields follow the same rules as
    validate_new. ``id`` cannot be changed.
    """
    _require_mapping(raw)
    cleaned = {}
    for field, value in raw.items():
        if field == "id":
            raise ValidationFailed(field, REASON_IMMUTABLE)
        if field not in REQUIRED_FIELDS:
            raise ValidationFailed(field, REASON_UNKNOWN)
        cleaned[field] = _clean(value)
        if not cleaned[field]:
            raise ValidationFailed(field, REASON_REQUIRED)
        _check_format(field, cleaned[field])
    return cleaned
