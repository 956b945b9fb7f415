# -*- encoding: utf-8 -*-
"""
IndexedDB adapter for Pyodide/PyScript.

IndexedDB reports every outcome through callbacks (onsuccess, onerror,
oncomplete, onabort, onupgradeneeded). This module wraps those callbacks in
asyncio Futures so callers simply ``await`` requests, transactions and cursor
walks.

Rules that shape the helpers below:
- A transaction auto-commits as soon as the event loop returns to the browser
  with no pending request. Read-then-write sequences must therefore issue the
  write from inside a request callback (see _walk_cursor), never after an
  unrelated ``await``.
- A failed request (e.g. ConstraintError from a unique index) aborts its
  transaction; the error bubbles to the transaction's onerror.

Memory Safety:
- Every Pyodide proxy created here is destroyed once its Future settles.

Usage:
    db = await open_database(
        "FuncionariosDB", "funcionarios", version=1, key_path="id", indexes=INDEXES
    )
    async with IDBTransaction(db, ["funcionarios"], IDBTransactionMode.READWRITE) as tx:
        store = tx.objectStore("funcionarios")
        new_id = await _await_request(store.add(to_js_object({"nome": "Ana"})))
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple

# Pyodide/PyScript browser environment imports
try:
    from js import Object, console, indexedDB
    from pyodide.ffi import create_proxy, to_js
except ImportError:
    Object = None
    console = None
    indexedDB = None
    create_proxy = None
    to_js = None


# =============================================================================
# EXCEPTIONS
# =============================================================================


class IndexedDBError(Exception):
    """Base exception for IndexedDB operations."""

    pass


class DatabaseNotOpenError(IndexedDBError):
    """Database has not been opened."""

    pass


class TransactionAbortedError(IndexedDBError):
    """Transaction was aborted."""

    pass


class DatabaseBlockedError(IndexedDBError):
    """Database upgrade blocked by another tab."""

    pass


class IndexedDBRequestError(IndexedDBError):
    """Request-level error with optional DOMException name."""

    def __init__(self, message: str, *, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


# =============================================================================
# CONVERSIONS
# =============================================================================


def _is_js_null(value: Any) -> bool:
    """Return True if value represents JS null/undefined in Pyodide."""
    if value is None:
        return True
    tname = type(value).__name__
    if tname in ("JsNull", "JsUndefined"):
        return True
    try:
        return str(value) == "null"
    except Exception:
        return False


def _contains(names: Any, name: str) -> bool:
    """Membership test for a DOMStringList (objectStoreNames/indexNames)."""
    if hasattr(names, "contains"):
        return bool(names.contains(name))
    return name in names


def to_js_object(record: dict) -> Any:
    """
    Convert a Python dict to a plain JS object (records and option bags).

    Without dict_converter Pyodide would produce a JS Map, which IndexedDB
    cannot resolve a keyPath against.
    """
    if to_js is None:
        raise IndexedDBError("Pyodide environment not available")
    return to_js(record, dict_converter=Object.fromEntries)


def from_js_record(value: Any) -> Optional[dict]:
    """Convert a stored JS object back to a Python dict (None for JS null)."""
    if _is_js_null(value):
        return None
    if hasattr(value, "to_py"):
        value = value.to_py()
    return dict(value)


def from_js_list(value: Any) -> list:
    """Convert a JS array result (getAll) to a Python list."""
    if _is_js_null(value):
        return []
    if hasattr(value, "to_py"):
        value = value.to_py()
    return list(value)


def _error_from_event(event: Any, default: str) -> IndexedDBRequestError:
    error = event.target.error
    name = getattr(error, "name", None)
    error_msg = str(error) if error else default
    return IndexedDBRequestError(error_msg, name=name)


# =============================================================================
# AWAITABLES
# =============================================================================


async def _await_request(request: Any) -> Any:
    """
    Convert IDBRequest to Python awaitable with proper proxy cleanup.

    IndexedDB operations return IDBRequest objects. This helper wraps them
    in a Future that resolves when onsuccess fires.
    """
    loop = asyncio.get_event_loop()
    future = loop.create_future()

    success_proxy = None
    error_proxy = None

    def on_success(event):
        if not future.done():
            future.set_result(event.target.result)

    def on_error(event):
        if not future.done():
            future.set_exception(_error_from_event(event, "Unknown error"))

    try:
        success_proxy = create_proxy(on_success)
        error_proxy = create_proxy(on_error)

        request.onsuccess = success_proxy
        request.onerror = error_proxy

        result = await future
        return None if _is_js_null(result) else result
    finally:
        # Always cleanup proxies to prevent memory leaks
        if success_proxy is not None:
            success_proxy.destroy()
        if error_proxy is not None:
            error_proxy.destroy()


def _watch_transaction(tx: Any) -> Tuple[asyncio.Future, list]:
    """
    Attach complete/error/abort handlers to a fresh transaction.

    IndexedDB never replays an outcome to a handler set after the event
    fired, so this must run right after the transaction is created.

    Returns:
        (future resolving to True on complete, proxies to destroy)
    """
    loop = asyncio.get_event_loop()
    future = loop.create_future()

    def on_complete(event):
        if not future.done():
            future.set_result(True)

    def on_error(event):
        if not future.done():
            future.set_exception(_error_from_event(event, "Transaction error"))

    def on_abort(event):
        if not future.done():
            future.set_exception(TransactionAbortedError("Transaction aborted"))

    complete_proxy = create_proxy(on_complete)
    error_proxy = create_proxy(on_error)
    abort_proxy = create_proxy(on_abort)

    tx.oncomplete = complete_proxy
    tx.onerror = error_proxy
    tx.onabort = abort_proxy

    return future, [complete_proxy, error_proxy, abort_proxy]


async def _walk_cursor(request: Any, on_item: Callable[[Any], bool]) -> None:
    """
    Walk an IndexedDB cursor without yielding between steps.

    All cursor steps are handled in synchronous onsuccess callbacks, so the
    transaction stays alive for the entire walk and on_item may issue writes
    (cursor.update / cursor.delete) inside it.

    Args:
        request: IDBRequest from store.openCursor() or index.openCursor()
        on_item: Called for each cursor position. Return True to continue,
                 False to stop early.
    """
    loop = asyncio.get_event_loop()
    future = loop.create_future()

    success_proxy = None
    error_proxy = None

    def on_success(event):
        if future.done():
            return
        cursor = event.target.result
        if _is_js_null(cursor):
            future.set_result(True)
            return
        try:
            should_continue = on_item(cursor)
        except Exception as e:
            future.set_exception(e)
            return
        if should_continue:
            cursor.continue_()
        else:
            future.set_result(True)

    def on_error(event):
        if future.done():
            return
        future.set_exception(_error_from_event(event, "Cursor error"))

    try:
        success_proxy = create_proxy(on_success)
        error_proxy = create_proxy(on_error)
        request.onsuccess = success_proxy
        request.onerror = error_proxy
        await future
    finally:
        if success_proxy is not None:
            success_proxy.destroy()
        if error_proxy is not None:
            error_proxy.destroy()


# =============================================================================
# TRANSACTIONS
# =============================================================================


class IDBTransactionMode(Enum):
    """IndexedDB transaction modes."""

    READONLY = "readonly"
    READWRITE = "readwrite"


class IDBTransaction:
    """
    Async context manager for IndexedDB transactions.

    Outcome handlers are attached on entry, before any request is issued.
    The transaction auto-commits when the context exits without error; exit
    then waits for oncomplete so callers observe durable writes. If the body
    raised, that exception propagates.

    Usage:
        async with IDBTransaction(db, ['funcionarios'], IDBTransactionMode.READWRITE) as tx:
            store = tx.objectStore('funcionarios')
            store.put(value)

    WARNING: Do not await anything but requests of this transaction inside
    the context. IndexedDB closes idle transactions.
    """

    def __init__(
        self,
        db: Any,
        store_names: list[str],
        mode: IDBTransactionMode = IDBTransactionMode.READONLY,
    ):
        if db is None:
            raise DatabaseNotOpenError("Database has not been opened")
        self.db = db
        self.store_names = store_names
        self.mode = mode
        self.tx = None
        self._outcome: Optional[asyncio.Future] = None
        self._proxies: list = []

    async def __aenter__(self) -> Any:
        self.tx = self.db.transaction(self.store_names, self.mode.value)
        self._outcome, self._proxies = _watch_transaction(self.tx)
        return self.tx

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self._outcome
            elif self._outcome.done() and not self._outcome.cancelled():
                # The body's exception wins over the transaction outcome.
                self._outcome.exception()
        finally:
            if not self._outcome.done():
                self._outcome.cancel()
            self.tx.oncomplete = None
            self.tx.onerror = None
            self.tx.onabort = None
            for proxy in self._proxies:
                proxy.destroy()
            self._proxies = []
        return False


# =============================================================================
# DATABASE LIFECYCLE
# =============================================================================


def _apply_schema(request: Any, store_name: str, key_path: str, indexes: Iterable[Any]):
    """
    Upgrade hook body: create the object store if missing and reconcile its
    index set with ``indexes`` (IndexSpec-like objects).
    """
    db = request.result
    if _contains(db.objectStoreNames, store_name):
        store = request.transaction.objectStore(store_name)
    else:
        store = db.createObjectStore(
            store_name, to_js_object({"keyPath": key_path, "autoIncrement": True})
        )

    declared = {spec.name: spec for spec in indexes}
    for existing in list(store.indexNames):
        spec = declared.get(existing)
        if spec is None or bool(store.index(existing).unique) != spec.unique:
            store.deleteIndex(existing)

    for spec in declared.values():
        if not _contains(store.indexNames, spec.name):
            store.createIndex(
                spec.name, spec.key_path, to_js_object({"unique": spec.unique})
            )


async def open_database(
    name: str,
    store_name: str,
    *,
    version: int = 1,
    key_path: str = "id",
    indexes: Iterable[Any] = (),
    factory: Any = None,
) -> Any:
    """
    Open an IndexedDB database holding one auto-increment object store.

    onupgradeneeded fires only when ``version`` is higher than the version
    recorded in the browser, so the schema hook runs once per version bump.

    Args:
        name: Database name
        store_name: Object store (collection) name
        version: Schema version (increment whenever the index set changes)
        key_path: In-line key path of the records
        indexes: IndexSpec-like objects (name, key_path, unique)
        factory: IDBFactory to use, defaults to the browser's indexedDB

    Returns:
        IDBDatabase instance

    Raises:
        DatabaseBlockedError: If another tab blocks the upgrade
        IndexedDBError: On other database errors
    """
    factory = factory if factory is not None else indexedDB
    if factory is None:
        raise IndexedDBError(
            "IndexedDB not available - not running in browser environment"
        )
    indexes = list(indexes)

    loop = asyncio.get_event_loop()
    future = loop.create_future()

    # Track all proxies for cleanup
    proxies = []

    def on_upgrade(event):
        """Called when database is created or version increases."""
        try:
            _apply_schema(event.target, store_name, key_path, indexes)
        except Exception as e:
            if not future.done():
                future.set_exception(
                    IndexedDBError(f"Schema upgrade of '{name}' failed: {e}")
                )
            event.target.transaction.abort()

    def on_blocked_handler(event):
        """Called when another tab has the DB open at an older version."""
        if console:
            console.warn(f"Database '{name}' upgrade blocked by another tab")
        if not future.done():
            future.set_exception(
                DatabaseBlockedError(
                    f"Database '{name}' upgrade blocked - close other tabs using this database"
                )
            )

    def on_success(event):
        if not future.done():
            future.set_result(event.target.result)

    def on_error(event):
        if not future.done():
            error_msg = (
                str(event.target.error)
                if event.target.error
                else "Failed to open database"
            )
            future.set_exception(IndexedDBError(error_msg))

    try:
        request = factory.open(name, version)

        upgrade_proxy = create_proxy(on_upgrade)
        blocked_proxy = create_proxy(on_blocked_handler)
        success_proxy = create_proxy(on_success)
        error_proxy = create_proxy(on_error)

        proxies.extend([upgrade_proxy, blocked_proxy, success_proxy, error_proxy])

        request.onupgradeneeded = upgrade_proxy
        request.onblocked = blocked_proxy
        request.onsuccess = success_proxy
        request.onerror = error_proxy

        return await future
    finally:
        for proxy in proxies:
            proxy.destroy()

