"""
form_state.py - state/effects reducer behind the employee form page.

The page controller (app/form_app.py) dispatches actions, re-renders from the
returned state and runs the returned effects against the EmployeeStore. The
reducer itself never touches the DOM or the store.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from funcionarios.employee import Employee

Effect = Tuple[str, Any]

# Effects
OPEN = "OPEN"
REFRESH = "REFRESH"
ADD = "ADD"
UPDATE = "UPDATE"
DELETE = "DELETE"
FILL_FORM = "FILL_FORM"
RESET_FORM = "RESET_FORM"


@dataclass(frozen=True)
class FormState:
    busy: bool = False
    ready: bool = False
    editing_id: Optional[int] = None
    employees: Tuple[Employee, ...] = ()
    status: str = "Carregando banco de dados..."


def _find(employees: Tuple[Employee, ...], key: Any) -> Optional[Employee]:
    for employee in employees:
        if employee.id == key:
            return employee
    return None


def reduce(current: FormState, action: dict) -> Tuple[FormState, List[Effect]]:
    action_type = action.get("type")

    if action_type == "BOOTED":
        return replace(current, busy=True), [(OPEN, None)]

    if action_type == "STORE_OPENED":
        return replace(current, busy=False, ready=True, status="Pronto"), [(REFRESH, None)]

    if action_type == "STORE_FAILED":
        return (
            replace(current, busy=False, ready=False, status="Banco de dados indisponível"),
            [],
        )

    if action_type == "REFRESH_REQUESTED":
        if not current.ready:
            return current, []
        return current, [(REFRESH, None)]

    if action_type == "LIST_LOADED":
        return replace(current, employees=tuple(action.get("employees") or ())), []

    if action_type == "SUBMIT_REQUESTED":
        if current.busy or not current.ready:
            return current, []
        fields = dict(action.get("fields") or {})
        if current.editing_id is None:
            return replace(current, busy=True, status="Salvando..."), [(ADD, fields)]
        return (
            replace(current, busy=True, status="Salvando..."),
            [(UPDATE, (current.editing_id, fields))],
        )

    if action_type == "EDIT_REQUESTED":
        employee = _find(current.employees, action.get("id"))
        if employee is None or current.busy:
            return current, []
        return (
            replace(current, editing_id=employee.id, status=f"Editando #{employee.id}"),
            [(FILL_FORM, employee)],
        )

    if action_type == "EDIT_CANCELLED":
        return replace(current, editing_id=None, status="Pronto"), [(RESET_FORM, None)]

    if action_type == "DELETE_REQUESTED":
        if current.busy or not current.ready:
            return current, []
        return replace(current, busy=True, status="Removendo..."), [(DELETE, action["id"])]

    if action_type == "OPERATION_DONE":
        op = action.get("op")
        editing_id = current.editing_id
        effects: List[Effect] = []
        if op in (ADD, UPDATE):
            editing_id = None
            effects.append((RESET_FORM, None))
        elif op == DELETE and action.get("id") == editing_id:
            editing_id = None
            effects.append((RESET_FORM, None))
        return replace(current, busy=False, editing_id=editing_id, status="Pronto"), effects

    if action_type == "OPERATION_FAILED":
        return replace(current, busy=False, status="Pronto"), []

    return current, []
