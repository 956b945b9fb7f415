"""
ui_log.py - shared diagnostic log sink for browser and non-browser runs.

The store and the form controller emit structured log entries through this
module instead of calling the JS console directly. A controller (or a test)
can register a custom entry sink; without one, entries go to the
browser console, and to stdout outside the browser.
"""

from __future__ import annotations

import datetime
from typing import Any, Callable, Dict, Optional

# Browser console bridge
try:
    from js import console
except ImportError:  # pragma: no cover - non-browser usage
    console = None


LogEntry = Dict[str, Any]
EntrySink = Callable[[LogEntry], None]

_ALLOWED_CSS = {"info", "success", "fail", "loading"}
_entry_sink: Optional[EntrySink] = None


def _now() -> str:
    return datetime.datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _normalize_css(css_class: str) -> str:
    return css_class if css_class in _ALLOWED_CSS else "info"


def _normalize_entry(entry: LogEntry) -> LogEntry:
    return {
        "time": str(entry.get("time") or _now()),
        "css": _normalize_css(str(entry.get("css") or "info")),
        "msg": str(entry.get("msg") or ""),
    }


def set_sinks(entry_sink: Optional[EntrySink] = None) -> None:
    """Register a sink for app-level rendering or capture."""
    global _entry_sink
    _entry_sink = entry_sink


def clear_sinks() -> None:
    """Remove the registered sink and fall back to console output."""
    global _entry_sink
    _entry_sink = None


def emit(msg: Any, css_class: str = "info", *, time: Optional[str] = None) -> None:
    entry = _normalize_entry({"time": time, "css": css_class, "msg": msg})
    if _entry_sink is not None:
        _entry_sink(entry)
        return
    _console_emit(entry)


def _console_emit(entry: LogEntry) -> None:
    line = f"[{entry['time']}] {entry['msg']}"
    if console is None:
        print(line)
        return
    if entry["css"] == "fail":
        console.error(line)
    else:
        console.log(line)
