#!/usr/bin/env python3
"""Browser smoke test for the employee form page."""

from __future__ import annotations

import os
import sys
import time
import urllib.error
import urllib.request

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

BASE_URL = os.environ.get("FUNCIONARIOS_BASE_URL", "http://127.0.0.1:8000").rstrip("/")
SERVER_WAIT_SECONDS = 90
PYSCRIPT_READY_WAIT_MS = 300_000
OPERATION_WAIT_MS = 30_000

LIST_LOADED_MSG = "Lista de funcionários carregada com sucesso!"


def log_step(message: str) -> None:
    print(f"[smoke] {message}", flush=True)


def wait_for_server(url: str, timeout_s: int) -> None:
    log_step(f"Waiting for local server at {url} (timeout={timeout_s}s)")
    start = time.time()
    deadline = time.time() + timeout_s
    last_error = "server did not respond"

    while time.time() < deadline:
        try:
            with urllib.request.urlopen(f"{url}/index.html", timeout=5) as resp:
                if resp.status == 200:
                    log_step(f"Server is reachable after {int(time.time() - start)}s")
                    return
                last_error = f"unexpected status {resp.status}"
        except (urllib.error.URLError, TimeoutError) as exc:
            last_error = str(exc)
        time.sleep(1)

    raise RuntimeError(f"Timed out waiting for server at {url}: {last_error}")


def _sample_employee() -> dict:
    # Unique per run so repeated smoke runs do not collide on the unique indexes.
    stamp = int(time.time() * 1000) % 10**11
    digits = f"{stamp:011d}"
    return {
        "nome": "Smoke Teste",
        "cpf": f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}",
        "email": f"smoke{stamp}@example.com",
        "telefone": digits,
        "data_nascimento": "1990-01-01",
        "cargo": "QA",
    }


def main() -> int:
    log_step(f"Starting browser smoke checks for {BASE_URL}")
    wait_for_server(BASE_URL, SERVER_WAIT_SECONDS)
    log_step("Launching headless Chromium")

    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True)
        page = browser.new_page()
        page_errors: list[str] = []
        page.on("pageerror", lambda exc: page_errors.append(str(exc)))

        try:
            log_step("Opening /index.html")
            page.goto(f"{BASE_URL}/index.html", wait_until="domcontentloaded")
            log_step("Waiting for the store to open and the list to load")
            page.wait_for_function(
                "(msg) => document.getElementById('feedback-msg').textContent === msg",
                arg=LIST_LOADED_MSG,
                timeout=PYSCRIPT_READY_WAIT_MS,
            )

            employee = _sample_employee()
            log_step(f"Submitting employee {employee['cpf']}")
            for field, value in employee.items():
                page.fill(f"#{field}", value)
            page.click("#submitBtn")

            page.wait_for_function(
                "(cpf) => document.querySelector('.your_dates').textContent.includes(cpf)",
                arg=employee["cpf"],
                timeout=OPERATION_WAIT_MS,
            )
            log_step("New employee rendered in the list")

            log_step("Submitting a duplicate CPF")
            for field, value in employee.items():
                page.fill(f"#{field}", value)
            page.click("#submitBtn")
            page.wait_for_selector("#feedback-msg.error", timeout=OPERATION_WAIT_MS)
            log_step("Duplicate rejected with error feedback")

        except PlaywrightTimeoutError as exc:
            log_step(f"Playwright timeout: {exc}")
            return 1
        except Exception as exc:
            log_step(f"Smoke check failed: {type(exc).__name__}: {exc}")
            return 1
        finally:
            browser.close()

        if page_errors:
            log_step("Detected browser page errors:")
            for err in page_errors:
                log_step(f"- {err}")
            return 1

    log_step("Browser smoke checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
