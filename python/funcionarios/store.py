# -*- encoding: utf-8 -*-
"""
store.py - EmployeeStore, the data-access layer of the employee form.

One object store ("funcionarios") keyed by an auto-increment ``id`` with
secondary indexes on nome, cpf, email, telefone and cargo. Every public
operation is awaitable and resolves to ``Ok(value)`` or ``Err(error)``;
failures are logged, reported to the feedback sink and returned, never
raised.

Usage:
    store = EmployeeStore(on_change=schedule_refresh)
    await store.open()
    result = await store.add({"nome": "Ana Silva", "cpf": "123.456.789-00", ...})
    if result.ok:
        new_id = result.value
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, Mapping, Optional, Union

from funcionarios import config
from funcionarios import feedback as ui_feedback
from funcionarios import ui_log
from funcionarios.employee import Employee
from funcionarios.errors import (
    ConstraintViolation,
    EmployeeStoreError,
    NotFound,
    ReadFailed,
    StoreUnavailable,
    ValidationFailed,
    WriteFailed,
)
from funcionarios.indexeddb_python import (
    IDBTransaction,
    IDBTransactionMode,
    IndexedDBRequestError,
    _await_request,
    _walk_cursor,
    from_js_list,
    from_js_record,
    open_database,
    to_js_object,
)
from funcionarios.validation import (
    REASON_FORMAT,
    REASON_UNKNOWN,
    validate_new,
    validate_partial,
)


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class Ok:
    value: Any = None
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err:
    error: EmployeeStoreError
    ok: ClassVar[bool] = False


Result = Union[Ok, Err]


# =============================================================================
# FEEDBACK MESSAGES
# =============================================================================

MSG_DB_ERROR = "Erro ao carregar banco de dados!"
MSG_LIST_OK = "Lista de funcionários carregada com sucesso!"
MSG_LIST_ERROR = "Erro ao listar funcionários!"
MSG_ADD_OK = "Funcionário cadastrado com sucesso!"
MSG_ADD_ERROR = "Erro ao cadastrar funcionário!"
MSG_UPDATE_OK = "Dados atualizados com sucesso!"
MSG_UPDATE_ERROR = "Erro ao atualizar funcionário!"
MSG_DELETE_OK = "Funcionário removido com sucesso!"
MSG_DELETE_ERROR = "Erro ao remover funcionário!"
MSG_GET_ERROR = "Erro ao carregar funcionário!"
MSG_NOT_FOUND = "Funcionário não encontrado!"
MSG_DUPLICATE = "CPF, e-mail ou telefone já cadastrado!"
MSG_REQUIRED = "Todos os campos são obrigatórios!"
MSG_INVALID_CPF = "CPF inválido!"
MSG_INVALID_EMAIL = "E-mail inválido!"
MSG_INVALID_FIELD = "Campo inválido: {field}"


def validation_message(error: ValidationFailed) -> str:
    """User-facing message for a local validation failure."""
    if error.reason == REASON_FORMAT and error.field == "cpf":
        return MSG_INVALID_CPF
    if error.reason == REASON_FORMAT and error.field == "email":
        return MSG_INVALID_EMAIL
    if error.reason in (REASON_FORMAT, REASON_UNKNOWN) or error.field == "id":
        return MSG_INVALID_FIELD.format(field=error.field)
    return MSG_REQUIRED


def _is_constraint_error(exc: Exception) -> bool:
    if isinstance(exc, IndexedDBRequestError) and exc.name == "ConstraintError":
        return True
    return "ConstraintError" in str(exc)


def _classify_write(exc: Exception) -> EmployeeStoreError:
    if _is_constraint_error(exc):
        return ConstraintViolation(str(exc))
    return WriteFailed(str(exc))


class StoreState(Enum):
    """Lifecycle of the database handle."""

    UNINITIALIZED = "uninitialized"
    OPENING = "opening"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class EmployeeStore:
    """
    Owns one IndexedDB handle and the employee CRUD operations on it.

    Parameters:
        name: database name
        version: schema version; bump it whenever ``indexes`` changes
        store_name: object store holding the employees
        indexes: IndexSpec tuple for the secondary indexes
        factory: IDBFactory, defaults to the browser's ``indexedDB``
        feedback: callable(message, kind) for user-facing messages
        on_change: callable() invoked after every successful mutation so the
            list view can refresh
    """

    def __init__(
        self,
        name: str = config.DB_NAME,
        *,
        version: int = config.DB_VERSION,
        store_name: str = config.STORE_NAME,
        indexes: Iterable[config.IndexSpec] = config.INDEXES,
        factory: Any = None,
        feedback: Optional[Callable[[str, str], None]] = None,
        on_change: Optional[Callable[[], Any]] = None,
    ):
        self.name = name
        self.version = version
        self.store_name = store_name
        self.indexes = tuple(indexes)
        self.factory = factory
        self.feedback = feedback if feedback is not None else ui_feedback.show
        self.on_change = on_change
        self.db = None
        self.state = StoreState.UNINITIALIZED
        self._opening: Optional[asyncio.Future] = None

    @property
    def ready(self) -> bool:
        return self.state is StoreState.READY

    # Lifecycle
    async def open(self) -> Result:
        """
        Open the database, creating the collection and indexes on first use.

        Idempotent: a ready store returns immediately and concurrent callers
        share the in-flight attempt. A failed open is terminal for this
        instance.
        """
        if self.state is StoreState.READY:
            return Ok(self)
        if self.state is StoreState.FAILED:
            return self._fail(
                StoreUnavailable(f"Database '{self.name}' failed to open"),
                MSG_DB_ERROR,
            )
        if self._opening is None:
            self._opening = asyncio.ensure_future(self._open())
        return await self._opening

    async def _open(self) -> Result:
        self.state = StoreState.OPENING
        try:
            self.db = await open_database(
                self.name,
                self.store_name,
                version=self.version,
                key_path=config.KEY_PATH,
                indexes=self.indexes,
                factory=self.factory,
            )
        except Exception as e:
            self.state = StoreState.FAILED
            return self._fail(
                StoreUnavailable(f"Database '{self.name}' unavailable: {e}"),
                MSG_DB_ERROR,
            )
        finally:
            self._opening = None

        self.state = StoreState.READY
        ui_log.emit(f"Banco de dados {self.name} carregado com sucesso!", "success")
        return Ok(self)

    def close(self) -> None:
        """Close the handle. Operations report StoreUnavailable until reopened."""
        if self.db is not None:
            self.db.close()
            self.db = None
        if self.state is StoreState.READY:
            self.state = StoreState.CLOSED

    # Reads
    async def list(self) -> Result:
        """Return Ok([Employee, ...]) in key order via a full cursor scan."""
        if not self.ready:
            return self._unavailable(MSG_LIST_ERROR)

        employees = []

        def on_item(cursor):
            employees.append(Employee.from_record(from_js_record(cursor.value)))
            return True

        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READONLY
            ) as tx:
                store = tx.objectStore(self.store_name)
                await _walk_cursor(store.openCursor(), on_item)
        except Exception as e:
            return self._fail(ReadFailed(str(e)), MSG_LIST_ERROR)

        self.feedback(MSG_LIST_OK, ui_feedback.SUCCESS)
        return Ok(employees)

    async def get(self, key: Any) -> Result:
        """Return Ok(Employee) for ``key`` or Err(NotFound)."""
        if not self.ready:
            return self._unavailable(MSG_GET_ERROR)
        try:
            key = self._coerce_key(key)
        except ValidationFailed as e:
            return self._fail(e, validation_message(e))

        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READONLY
            ) as tx:
                store = tx.objectStore(self.store_name)
                record = from_js_record(await _await_request(store.get(key)))
        except Exception as e:
            return self._fail(ReadFailed(str(e)), MSG_GET_ERROR)

        if record is None:
            return self._fail(NotFound(key), MSG_NOT_FOUND)
        return Ok(Employee.from_record(record))

    async def find_by(self, index: str, value: Any) -> Result:
        """Return Ok([Employee, ...]) whose ``index`` field equals ``value``."""
        if not self.ready:
            return self._unavailable(MSG_LIST_ERROR)
        if index not in {spec.name for spec in self.indexes}:
            error = ValidationFailed(index, REASON_UNKNOWN)
            return self._fail(error, validation_message(error))

        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READONLY
            ) as tx:
                store = tx.objectStore(self.store_name)
                values = from_js_list(await _await_request(store.index(index).getAll(value)))
        except Exception as e:
            return self._fail(ReadFailed(str(e)), MSG_LIST_ERROR)

        return Ok([Employee.from_record(from_js_record(v)) for v in values])

    # Writes
    async def add(self, raw: Mapping[str, Any]) -> Result:
        """
        Validate and insert a new employee.

        Returns:
            Ok(id) with the id assigned by the store
            Err(ValidationFailed) without touching the store
            Err(ConstraintViolation) when cpf, email or telefone is taken
        """
        if not self.ready:
            return self._unavailable(MSG_ADD_ERROR)
        try:
            fields = validate_new(raw)
        except ValidationFailed as e:
            return self._fail(e, validation_message(e))

        record = Employee(id=None, **fields).to_record()
        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READWRITE
            ) as tx:
                store = tx.objectStore(self.store_name)
                new_id = await _await_request(store.add(to_js_object(record)))
        except Exception as e:
            return self._fail_write(e, MSG_ADD_ERROR)

        ui_log.emit(f"Funcionário {int(new_id)} adicionado com sucesso!", "success")
        self.feedback(MSG_ADD_OK, ui_feedback.SUCCESS)
        self._changed()
        return Ok(int(new_id))

    async def update(self, key: Any, fields: Mapping[str, Any]) -> Result:
        """
        Merge ``fields`` onto the stored employee ``key``.

        The read and the write happen in the same cursor callback, so the
        transaction stays active. Omitted fields are left untouched. There is
        no check that the record changed since the caller last read it.

        Returns:
            Ok(Employee) with the merged record
        """
        if not self.ready:
            return self._unavailable(MSG_UPDATE_ERROR)
        try:
            key = self._coerce_key(key)
            changes = validate_partial(fields)
        except ValidationFailed as e:
            return self._fail(e, validation_message(e))

        merged = None

        def on_item(cursor):
            nonlocal merged
            record = from_js_record(cursor.value)
            record.update(changes)
            cursor.update(to_js_object(record))
            merged = Employee.from_record(record)
            return False

        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READWRITE
            ) as tx:
                store = tx.objectStore(self.store_name)
                await _walk_cursor(store.openCursor(key), on_item)
        except Exception as e:
            return self._fail_write(e, MSG_UPDATE_ERROR)

        if merged is None:
            return self._fail(NotFound(key), MSG_NOT_FOUND)

        ui_log.emit(f"Funcionário {key} atualizado com sucesso!", "success")
        self.feedback(MSG_UPDATE_OK, ui_feedback.SUCCESS)
        self._changed()
        return Ok(merged)

    async def delete(self, key: Any) -> Result:
        """
        Remove employee ``key``.

        The cursor is positioned on the key, so a missing id is reported as
        Err(NotFound) instead of succeeding silently.
        """
        if not self.ready:
            return self._unavailable(MSG_DELETE_ERROR)
        try:
            key = self._coerce_key(key)
        except ValidationFailed as e:
            return self._fail(e, validation_message(e))

        deleted = False

        def on_item(cursor):
            nonlocal deleted
            cursor.delete()
            deleted = True
            return False

        try:
            async with IDBTransaction(
                self.db, [self.store_name], IDBTransactionMode.READWRITE
            ) as tx:
                store = tx.objectStore(self.store_name)
                await _walk_cursor(store.openCursor(key), on_item)
        except Exception as e:
            return self._fail(WriteFailed(str(e)), MSG_DELETE_ERROR)

        if not deleted:
            return self._fail(NotFound(key), MSG_NOT_FOUND)

        ui_log.emit(f"Funcionário {key} deletado com sucesso!", "success")
        self.feedback(MSG_DELETE_OK, ui_feedback.SUCCESS)
        self._changed()
        return Ok(key)

    # Helpers
    @staticmethod
    def _coerce_key(key: Any) -> int:
        """Accept ints, integral floats and digit strings; never truncate."""
        if isinstance(key, bool):
            raise ValidationFailed("id", REASON_FORMAT)
        if isinstance(key, int):
            return key
        if isinstance(key, float) and key.is_integer():
            return int(key)
        if isinstance(key, str) and key.strip().isdecimal():
            return int(key.strip())
        raise ValidationFailed("id", REASON_FORMAT)

    def _unavailable(self, message: str) -> Err:
        return self._fail(
            StoreUnavailable(f"Database '{self.name}' is {self.state.value}"),
            message,
        )

    def _fail_write(self, exc: Exception, message: str) -> Err:
        error = _classify_write(exc)
        if isinstance(error, ConstraintViolation):
            message = MSG_DUPLICATE
        return self._fail(error, message)

    def _fail(self, error: EmployeeStoreError, message: str) -> Err:
        ui_log.emit(f"{message} {type(error).__name__}: {error}", "fail")
        self.feedback(message, ui_feedback.ERROR)
        return Err(error)

    def _changed(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change()
        except Exception as e:
            ui_log.emit(f"Falha ao atualizar a lista: {e}", "fail")
