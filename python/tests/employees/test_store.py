# -*- encoding: utf-8 -*-
"""
test_store.py - EmployeeStore against the in-memory IndexedDB fake.
"""

from __future__ import annotations

import asyncio

import pytest

from fakeidb import FakeProxy
from funcionarios import config
from funcionarios.employee import Employee
from funcionarios.errors import (
    ConstraintViolation,
    NotFound,
    ReadFailed,
    StoreUnavailable,
    ValidationFailed,
    WriteFailed,
)
from funcionarios.store import (
    MSG_ADD_OK,
    MSG_DB_ERROR,
    MSG_DELETE_OK,
    MSG_DUPLICATE,
    MSG_INVALID_FIELD,
    MSG_INVALID_CPF,
    MSG_INVALID_EMAIL,
    MSG_LIST_ERROR,
    MSG_LIST_OK,
    MSG_NOT_FOUND,
    MSG_REQUIRED,
    MSG_UPDATE_OK,
    EmployeeStore,
    Err,
    Ok,
    StoreState,
)


async def opened(factory, **kwa) -> EmployeeStore:
    store = EmployeeStore(factory=factory, **kwa)
    result = await store.open()
    assert result.ok, f"open returned {result}"
    return store


async def listed(store: EmployeeStore) -> list:
    result = await store.list()
    assert result.ok, f"list returned {result}"
    return result.value


# =============================================================================
# OPEN / LIFECYCLE
# =============================================================================


def test_open_creates_collection_and_indexes(factory):
    async def scenario():
        store = await opened(factory)
        assert store.state is StoreState.READY
        data = factory.databases[config.DB_NAME].stores[config.STORE_NAME]
        assert data.key_path == "id"
        assert data.auto_increment is True
        assert data.indexes == {
            "nome": ("nome", False),
            "cpf": ("cpf", True),
            "email": ("email", True),
            "telefone": ("telefone", True),
            "cargo": ("cargo", False),
        }
        assert factory.upgrades == 1

    asyncio.run(scenario())


def test_open_is_idempotent_and_shares_inflight_attempt(factory):
    async def scenario():
        store = EmployeeStore(factory=factory)
        first, second = await asyncio.gather(store.open(), store.open())
        assert first.ok and second.ok
        again = await store.open()
        assert again.ok
        assert again.value is store
        assert factory.upgrades == 1

    asyncio.run(scenario())


def test_reopen_same_version_keeps_data_without_upgrade(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        store.close()

        other = await opened(factory)
        employees = await listed(other)
        assert [e.nome for e in employees] == ["Ana Silva"]
        assert factory.upgrades == 1

    asyncio.run(scenario())


def test_version_bump_reconciles_index_set(factory, ana):
    async def scenario():
        without_cargo = tuple(i for i in config.INDEXES if i.name != "cargo")
        store = await opened(factory, indexes=without_cargo)
        await store.add(ana)
        store.close()

        extra = config.IndexSpec("data_nascimento", "data_nascimento")
        bumped = await opened(
            factory, version=2, indexes=tuple(config.INDEXES[1:]) + (extra,)
        )
        data = factory.databases[config.DB_NAME].stores[config.STORE_NAME]
        assert set(data.indexes) == {"cpf", "email", "telefone", "cargo", "data_nascimento"}
        assert factory.upgrades == 2
        assert [e.cpf for e in await listed(bumped)] == [ana["cpf"]]

    asyncio.run(scenario())


def test_open_failure_is_terminal(factory, messages):
    async def scenario():
        factory.fail_open = "UnknownError"
        store = EmployeeStore(factory=factory)
        result = await store.open()
        assert isinstance(result, Err)
        assert isinstance(result.error, StoreUnavailable)
        assert store.state is StoreState.FAILED
        assert messages[-1] == (MSG_DB_ERROR, "error")

        factory.fail_open = None
        retry = await store.open()
        assert isinstance(retry.error, StoreUnavailable)
        assert store.state is StoreState.FAILED
        assert config.DB_NAME not in factory.databases

    asyncio.run(scenario())


def test_open_blocked_by_other_tab(factory):
    async def scenario():
        factory.blocked.add(config.DB_NAME)
        store = EmployeeStore(factory=factory)
        result = await store.open()
        assert isinstance(result.error, StoreUnavailable)
        assert "blocked" in str(result.error)

    asyncio.run(scenario())


def test_open_without_indexeddb_environment():
    async def scenario():
        store = EmployeeStore()
        result = await store.open()
        assert isinstance(result.error, StoreUnavailable)
        assert store.state is StoreState.FAILED

    asyncio.run(scenario())


def test_operations_before_open_are_unavailable(factory, ana):
    async def scenario():
        store = EmployeeStore(factory=factory)
        for result in (
            await store.list(),
            await store.add(ana),
            await store.update(1, {"cargo": "X"}),
            await store.delete(1),
            await store.get(1),
            await store.find_by("cpf", ana["cpf"]),
        ):
            assert isinstance(result.error, StoreUnavailable), f"Got {result}"
        assert config.DB_NAME not in factory.databases

    asyncio.run(scenario())


def test_close_then_reopen(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        store.close()
        assert store.state is StoreState.CLOSED
        assert isinstance((await store.list()).error, StoreUnavailable)

        assert (await store.open()).ok
        assert len(await listed(store)) == 1

    asyncio.run(scenario())


# =============================================================================
# ADD / LIST
# =============================================================================


def test_add_then_list(factory, ana, messages):
    async def scenario():
        store = await opened(factory)
        result = await store.add(ana)
        assert result == Ok(1)
        assert (MSG_ADD_OK, "success") in messages

        employees = await listed(store)
        assert employees == [Employee(id=1, **ana)]
        assert messages[-1] == (MSG_LIST_OK, "success")

    asyncio.run(scenario())


def test_ids_are_fresh_and_never_reused(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        assert (await store.add(ana)).value == 1
        assert (await store.add(bruno)).value == 2
        assert (await store.delete(2)).ok
        assert (await store.add(bruno)).value == 3
        assert [e.id for e in await listed(store)] == [1, 3]

    asyncio.run(scenario())


def test_add_trims_fields(factory, ana):
    async def scenario():
        store = await opened(factory)
        padded = {k: f"  {v} " for k, v in ana.items()}
        assert (await store.add(padded)).ok
        assert await listed(store) == [Employee(id=1, **ana)]

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("cpf", "12345678900", MSG_INVALID_CPF),
        ("cpf", "123.456.789-0", MSG_INVALID_CPF),
        ("email", "ana@x", MSG_INVALID_EMAIL),
        ("email", "ana.x.com", MSG_INVALID_EMAIL),
        ("nome", "   ", MSG_REQUIRED),
        ("cargo", "", MSG_REQUIRED),
    ],
)
def test_add_rejects_invalid_input_without_touching_store(
    factory, ana, messages, field, value, message
):
    async def scenario():
        store = await opened(factory)
        ana[field] = value
        result = await store.add(ana)
        assert isinstance(result.error, ValidationFailed)
        assert result.error.field == field
        assert messages[-1] == (message, "error")
        assert factory.records(config.DB_NAME, config.STORE_NAME) == {}

    asyncio.run(scenario())


def test_add_rejects_missing_field(factory, ana):
    async def scenario():
        store = await opened(factory)
        del ana["telefone"]
        result = await store.add(ana)
        assert isinstance(result.error, ValidationFailed)
        assert result.error.field == "telefone"
        assert result.error.reason == "required"

    asyncio.run(scenario())


@pytest.mark.parametrize("field", ["cpf", "email", "telefone"])
def test_add_duplicate_unique_field_is_constraint_violation(
    factory, ana, bruno, messages, field
):
    async def scenario():
        store = await opened(factory)
        assert (await store.add(ana)).ok
        bruno[field] = ana[field]
        result = await store.add(bruno)
        assert isinstance(result.error, ConstraintViolation)
        assert messages[-1] == (MSG_DUPLICATE, "error")
        assert [e.nome for e in await listed(store)] == ["Ana Silva"]

    asyncio.run(scenario())


def test_add_engine_error_is_write_failed(factory, ana):
    async def scenario():
        store = await opened(factory)
        factory.fail_op(config.DB_NAME, "add", "QuotaExceededError")
        result = await store.add(ana)
        assert isinstance(result.error, WriteFailed)
        assert "QuotaExceededError" in str(result.error)

    asyncio.run(scenario())


def test_list_engine_error_is_read_failed(factory, ana, messages):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        factory.fail_op(config.DB_NAME, "openCursor", "UnknownError")
        result = await store.list()
        assert isinstance(result.error, ReadFailed)
        assert messages[-1] == (MSG_LIST_ERROR, "error")

    asyncio.run(scenario())


def test_list_is_restartable(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        first = await listed(store)
        await store.add(bruno)
        second = await listed(store)
        assert len(first) == 1
        assert [e.nome for e in second] == ["Ana Silva", "Bruno Costa"]

    asyncio.run(scenario())


# =============================================================================
# UPDATE
# =============================================================================


def test_update_changes_only_supplied_fields(factory, ana, bruno, messages):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)

        result = await store.update(1, {"cargo": "X"})
        assert result.ok
        assert result.value == Employee(id=1, **{**ana, "cargo": "X"})
        assert messages[-1] == (MSG_UPDATE_OK, "success")

        employees = await listed(store)
        assert employees[0] == Employee(id=1, **{**ana, "cargo": "X"})
        assert employees[1] == Employee(id=2, **bruno)

    asyncio.run(scenario())


def test_update_keeps_unknown_stored_keys(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        factory.databases[config.DB_NAME].stores[config.STORE_NAME].records[1]["extra"] = "x"
        assert (await store.update(1, {"nome": "Ana S."})).ok
        record = factory.records(config.DB_NAME, config.STORE_NAME)[1]
        assert record["extra"] == "x"
        assert record["nome"] == "Ana S."

    asyncio.run(scenario())


def test_update_missing_id_is_not_found(factory, messages):
    async def scenario():
        store = await opened(factory)
        result = await store.update(42, {"cargo": "X"})
        assert isinstance(result.error, NotFound)
        assert result.error.key == 42
        assert messages[-1] == (MSG_NOT_FOUND, "error")

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"email": "nope"}, "email"),
        ({"cpf": "1.2.3-4"}, "cpf"),
        ({"nome": " "}, "nome"),
        ({"id": 7}, "id"),
        ({"salario": "1000"}, "salario"),
    ],
)
def test_update_rejects_invalid_fields(factory, ana, fields, field):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        result = await store.update(1, fields)
        assert isinstance(result.error, ValidationFailed)
        assert result.error.field == field
        assert await listed(store) == [Employee(id=1, **ana)]

    asyncio.run(scenario())


def test_update_collision_is_constraint_violation(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)
        result = await store.update(2, {"email": ana["email"]})
        assert isinstance(result.error, ConstraintViolation)
        assert (await store.get(2)).value == Employee(id=2, **bruno)

    asyncio.run(scenario())


def test_update_engine_error_is_write_failed(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        factory.fail_op(config.DB_NAME, "put", "UnknownError")
        result = await store.update(1, {"cargo": "X"})
        assert isinstance(result.error, WriteFailed)
        assert (await store.get(1)).value.cargo == "Dev"

    asyncio.run(scenario())


def test_update_accepts_string_id(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        assert (await store.update("1", {"cargo": "QA"})).value.cargo == "QA"
        bad = await store.update("um", {"cargo": "QA"})
        assert isinstance(bad.error, ValidationFailed)
        assert bad.error.field == "id"

    asyncio.run(scenario())


@pytest.mark.parametrize("fields", [None, ["nome", "Ana"], "nome=Ana", 42])
def test_non_mapping_fields_are_rejected(factory, ana, messages, fields):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        for result in (await store.add(fields), await store.update(1, fields)):
            assert isinstance(result, Err)
            assert isinstance(result.error, ValidationFailed)
            assert result.error.field == "fields"
        assert messages[-1] == (MSG_INVALID_FIELD.format(field="fields"), "error")
        assert list(factory.records(config.DB_NAME, config.STORE_NAME)) == [1]
        assert (await store.get(1)).value == Employee(id=1, **ana)

    asyncio.run(scenario())


@pytest.mark.parametrize("key", [1.9, "1.0", "1a", "", None, True, float("nan"), [1]])
def test_non_integral_ids_never_reach_a_record(factory, ana, bruno, key):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)
        for result in (
            await store.delete(key),
            await store.update(key, {"cargo": "QA"}),
            await store.get(key),
        ):
            assert isinstance(result.error, ValidationFailed)
            assert result.error.field == "id"
        assert [e.cargo for e in await listed(store)] == ["Dev", "Gerente"]

    asyncio.run(scenario())


def test_integral_float_and_padded_string_ids_are_accepted(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)
        assert (await store.get(2.0)).value.nome == bruno["nome"]
        assert (await store.update(" 2 ", {"cargo": "QA"})).value.cargo == "QA"
        assert await store.delete(1.0) == Ok(1)
        assert [e.id for e in await listed(store)] == [2]

    asyncio.run(scenario())


# =============================================================================
# DELETE / GET / FIND
# =============================================================================


def test_delete_removes_record(factory, ana, bruno, messages):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)
        assert await store.delete(1) == Ok(1)
        assert (MSG_DELETE_OK, "success") in messages
        assert [e.id for e in await listed(store)] == [2]

    asyncio.run(scenario())


def test_delete_missing_id_is_not_found(factory, ana):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        result = await store.delete(99)
        assert isinstance(result.error, NotFound)
        assert len(await listed(store)) == 1

    asyncio.run(scenario())


def test_get_and_find_by_index(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(bruno)
        await store.add(
            {**bruno, "nome": "Carla", "cpf": "111.222.333-44",
             "email": "carla@x.com", "telefone": "31977776666"}
        )

        assert (await store.get(2)).value.nome == "Bruno Costa"
        assert isinstance((await store.get(9)).error, NotFound)

        by_cpf = await store.find_by("cpf", ana["cpf"])
        assert by_cpf.value == [Employee(id=1, **ana)]
        managers = await store.find_by("cargo", "Gerente")
        assert [e.id for e in managers.value] == [2, 3]
        assert (await store.find_by("cargo", "CEO")).value == []

        unknown = await store.find_by("salario", "1")
        assert isinstance(unknown.error, ValidationFailed)

    asyncio.run(scenario())


# =============================================================================
# COLLABORATORS
# =============================================================================


def test_on_change_runs_after_successful_mutations_only(factory, ana, bruno):
    async def scenario():
        changes = []
        store = await opened(factory, on_change=lambda: changes.append(True))
        await store.add(ana)
        await store.add({**bruno, "cpf": ana["cpf"]})
        await store.update(1, {"cargo": "X"})
        await store.update(5, {"cargo": "X"})
        await store.delete(1)
        await store.delete(1)
        await store.list()
        assert len(changes) == 3

    asyncio.run(scenario())


def test_on_change_failure_does_not_fail_operation(factory, ana, log_entries):
    async def scenario():
        def boom():
            raise RuntimeError("render failed")

        store = await opened(factory, on_change=boom)
        assert (await store.add(ana)).ok
        assert any("render failed" in e["msg"] for e in log_entries)

    asyncio.run(scenario())


def test_explicit_feedback_callable(factory, ana):
    async def scenario():
        seen = []
        store = await opened(factory, feedback=lambda m, k: seen.append((m, k)))
        await store.add({**ana, "email": "bad"})
        assert seen == [(MSG_INVALID_EMAIL, "error")]

    asyncio.run(scenario())


def test_failures_are_logged(factory, ana, log_entries):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add(ana)
        fails = [e for e in log_entries if e["css"] == "fail"]
        assert len(fails) == 1
        assert "ConstraintViolation" in fails[0]["msg"]

    asyncio.run(scenario())


def test_all_proxies_destroyed(factory, ana, bruno):
    async def scenario():
        store = await opened(factory)
        await store.add(ana)
        await store.add({**bruno, "cpf": ana["cpf"]})
        await store.update(1, {"cargo": "X"})
        await store.list()
        await store.delete(1)
        await store.find_by("cargo", "X")
        assert FakeProxy.live == 0

    asyncio.run(scenario())
