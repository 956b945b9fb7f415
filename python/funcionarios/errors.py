# -*- encoding: utf-8 -*-
"""
errors.py - Failure kinds returned by EmployeeStore operations.

Each operation catches engine errors at its boundary and returns one of
these inside an ``Err``; none of them is raised to the caller.
"""

from __future__ import annotations

from typing import Any, Optional


class EmployeeStoreError(Exception):
    """Base class for employee store failures."""

    pass


class StoreUnavailable(EmployeeStoreError):
    """Database not open, still opening, closed, or failed to open."""

    pass


class ValidationFailed(EmployeeStoreError):
    """A field failed a local check before reaching the store."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class ConstraintViolation(EmployeeStoreError):
    """Write rejected by a unique index (cpf, email or telefone)."""

    pass


class NotFound(EmployeeStoreError):
    """No employee with the requested id."""

    def __init__(self, key: Any, message: Optional[str] = None):
        super().__init__(message or f"Employee {key!r} not found")
        self.key = key


class ReadFailed(EmployeeStoreError):
    """Engine error while reading or scanning."""

    pass


class WriteFailed(EmployeeStoreError):
    """Engine error while inserting, updating or deleting."""

    pass
