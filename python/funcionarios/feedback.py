"""
feedback.py - transient user-facing messages ("success" / "error").

EmployeeStore reports the terminal outcome of every operation here. The
default rendering writes into the #feedback-msg element and hides it again
after FEEDBACK_HIDE_SECONDS. Tests and controllers can register a sink.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from funcionarios import config

try:
    from pyscript import document
except ImportError:  # pragma: no cover - non-browser usage
    document = None


SUCCESS = "success"
ERROR = "error"

FeedbackSink = Callable[[str, str], None]

_sink: Optional[FeedbackSink] = None
_hide_handle: Optional[asyncio.TimerHandle] = None


def set_sink(sink: Optional[FeedbackSink]) -> None:
    global _sink
    _sink = sink


def clear_sink() -> None:
    set_sink(None)


def _normalize_kind(kind: str) -> str:
    return kind if kind in (SUCCESS, ERROR) else ERROR


def show(message: str, kind: str = SUCCESS) -> None:
    """Display message with the given kind, replacing any visible message."""
    kind = _normalize_kind(kind)
    if _sink is not None:
        _sink(message, kind)
        return
    _dom_show(message, kind)


def _dom_show(message: str, kind: str) -> None:
    global _hide_handle
    element = document.getElementById(config.FEEDBACK_ELEMENT_ID) if document else None
    if element is None:
        print(f"[{kind}] {message}")
        return

    element.textContent = message
    element.className = f"feedback {kind}"
    element.style.display = "block"

    if _hide_handle is not None:
        _hide_handle.cancel()
    loop = asyncio.get_event_loop()
    _hide_handle = loop.call_later(config.FEEDBACK_HIDE_SECONDS, _hide, element)


def _hide(element) -> None:
    global _hide_handle
    _hide_handle = None
    element.style.display = "none"
