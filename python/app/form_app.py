"""
form_app.py - PyScript controller for the employee form page (index.html).

- Form submit -> EmployeeStore.add / update
- List rows rebuilt from state on every render (clear-and-rebuild)
- One delegated click listener on the list for the edit/delete buttons
- Store mutations refresh the list through the store's on_change hook
"""

from __future__ import annotations

import asyncio
import html

from pyodide.ffi.wrappers import add_event_listener
from pyscript import document

from funcionarios import config, form_state, ui_log
from funcionarios.employee import REQUIRED_FIELDS
from funcionarios.form_state import FormState, reduce
from funcionarios.store import EmployeeStore

state = FormState()


def _request_refresh() -> None:
    dispatch({"type": "REFRESH_REQUESTED"})


store = EmployeeStore(on_change=_request_refresh)


def _read_form() -> dict:
    fields = {}
    for field in REQUIRED_FIELDS:
        element = document.getElementById(field)
        fields[field] = element.value if element is not None else ""
    return fields


def _fill_form(employee) -> None:
    for field in REQUIRED_FIELDS:
        element = document.getElementById(field)
        if element is not None:
            element.value = getattr(employee, field)


def _reset_form() -> None:
    form = document.querySelector(config.FORM_SELECTOR)
    if form is not None:
        form.reset()


def _row_html(employee) -> str:
    text = (
        f"ID: {employee.id} - Nome: {employee.nome} - CPF: {employee.cpf} "
        f"- Email: {employee.email} - Telefone: {employee.telefone} "
        f"- Cargo: {employee.cargo} - Data de nascimento: {employee.data_nascimento}"
    )
    return (
        f"<p>{html.escape(text)} "
        f'<button type="button" data-action="edit" data-id="{employee.id}">Editar</button> '
        f'<button type="button" data-action="delete" data-id="{employee.id}">Excluir</button>'
        "</p>"
    )


def _render(current: FormState) -> None:
    listing = document.querySelector(config.LIST_SELECTOR)
    if listing is not None:
        listing.innerHTML = "".join(_row_html(e) for e in current.employees)

    submit = document.getElementById("submitBtn")
    if submit is not None:
        submit.disabled = current.busy or not current.ready
        submit.textContent = (
            "Salvar alterações" if current.editing_id is not None else "Cadastrar"
        )

    cancel = document.getElementById("cancelEditBtn")
    if cancel is not None:
        cancel.style.display = "inline" if current.editing_id is not None else "none"

    status = document.getElementById("status")
    if status is not None:
        status.textContent = current.status


async def _run_effect(effect: form_state.Effect) -> None:
    kind, payload = effect

    if kind == form_state.OPEN:
        result = await store.open()
        dispatch({"type": "STORE_OPENED" if result.ok else "STORE_FAILED"})
        return

    if kind == form_state.REFRESH:
        result = await store.list()
        if result.ok:
            dispatch({"type": "LIST_LOADED", "employees": result.value})
        return

    if kind == form_state.FILL_FORM:
        _fill_form(payload)
        return

    if kind == form_state.RESET_FORM:
        _reset_form()
        return

    if kind == form_state.ADD:
        result = await store.add(payload)
    elif kind == form_state.UPDATE:
        key, fields = payload
        result = await store.update(key, fields)
    elif kind == form_state.DELETE:
        result = await store.delete(payload)
    else:
        return

    if result.ok:
        dispatch({"type": "OPERATION_DONE", "op": kind, "id": payload})
    else:
        dispatch({"type": "OPERATION_FAILED", "op": kind})


def _on_effect_done(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        ui_log.emit(f"Efeito falhou: {type(exc).__name__}: {exc}", "fail")
        dispatch({"type": "OPERATION_FAILED"})


def dispatch(action: dict) -> None:
    global state
    state, effects = reduce(state, action)
    _render(state)
    for effect in effects:
        task = asyncio.ensure_future(_run_effect(effect))
        task.add_done_callback(_on_effect_done)


def _on_submit(event) -> None:
    event.preventDefault()
    dispatch({"type": "SUBMIT_REQUESTED", "fields": _read_form()})


def _on_list_click(event) -> None:
    target = event.target
    action = target.getAttribute("data-action") if target is not None else None
    if action not in ("edit", "delete"):
        return
    key = int(target.getAttribute("data-id"))
    if action == "edit":
        dispatch({"type": "EDIT_REQUESTED", "id": key})
    else:
        dispatch({"type": "DELETE_REQUESTED", "id": key})


def _on_cancel_edit(_event=None) -> None:
    dispatch({"type": "EDIT_CANCELLED"})


def _boot() -> None:
    form = document.querySelector(config.FORM_SELECTOR)
    listing = document.querySelector(config.LIST_SELECTOR)
    if form is None or listing is None:
        raise RuntimeError("Missing employee form or list container in page")

    add_event_listener(form, "submit", _on_submit)
    add_event_listener(listing, "click", _on_list_click)
    cancel = document.getElementById("cancelEditBtn")
    if cancel is not None:
        add_event_listener(cancel, "click", _on_cancel_edit)
    dispatch({"type": "BOOTED"})


_boot()
