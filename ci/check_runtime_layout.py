#!/usr/bin/env python3
"""Validate the employee form's runtime layout and PyScript mappings for CI."""

from __future__ import annotations

import re
import sys
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

REQUIRED_PATHS = [
    "index.html",
    "pyscript.toml",
    "python/app/form_app.py",
]

SCRIPT_TAG_RE = re.compile(r"<script\b[^>]*>", re.IGNORECASE)
ATTR_RE = re.compile(r'([a-zA-Z_:][a-zA-Z0-9_:\-]*)\s*=\s*["\']([^"\']+)["\']')


def rel_to_root(path_str: str, root: Path = ROOT) -> Path:
    normalized = path_str.strip()
    if normalized.startswith("http://") or normalized.startswith("https://"):
        return Path("__external__")
    if normalized.startswith("/"):
        normalized = normalized[1:]
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return root / normalized


def collect_script_refs(html_path: Path) -> tuple[list[str], list[str]]:
    py_srcs: list[str] = []
    py_configs: list[str] = []
    content = html_path.read_text(encoding="utf-8")

    for match in SCRIPT_TAG_RE.finditer(content):
        attrs = {k.lower(): v for k, v in ATTR_RE.findall(match.group(0))}
        if attrs.get("type", "").lower() != "py":
            continue

        src = attrs.get("src")
        if src:
            py_srcs.append(src)

        config = attrs.get("config")
        if config:
            py_configs.append(config)

    return py_srcs, py_configs


def find_missing(root: Path = ROOT) -> list[str]:
    """Return sorted repo-relative paths the page needs but that do not exist."""
    missing: list[str] = []

    for rel in REQUIRED_PATHS:
        if not (root / rel).exists():
            missing.append(rel)

    pyscript_path = root / "pyscript.toml"
    if pyscript_path.exists():
        cfg = tomllib.loads(pyscript_path.read_text(encoding="utf-8"))
        files_map = cfg.get("files", {})
        if not isinstance(files_map, dict):
            missing.append("pyscript.toml: [files] must be a table")
            files_map = {}
        for src in files_map:
            if not rel_to_root(str(src), root).exists():
                missing.append(str(src))

    html_path = root / "index.html"
    if html_path.exists():
        srcs, configs = collect_script_refs(html_path)
        for ref in srcs + configs:
            ref_path = rel_to_root(ref, root)
            if ref_path.name != "__external__" and not ref_path.exists():
                missing.append(f"index.html: {ref}")

    # Every package module must be shipped to the browser FS.
    if pyscript_path.exists():
        mapped = {str(rel_to_root(str(src), root)) for src in files_map}
        for module in sorted((root / "python" / "funcionarios").glob("*.py")):
            if str(module) not in mapped:
                missing.append(f"pyscript.toml: {module.relative_to(root)} not mapped")

    return sorted(set(missing))


def main() -> int:
    missing = find_missing()
    if missing:
        print("Runtime layout check failed. Missing paths:")
        for path in missing:
            print(f"- {path}")
        return 1

    print("Runtime layout check passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
