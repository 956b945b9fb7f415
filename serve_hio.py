#!/usr/bin/env python3
"""
Development server for the employee form.

hio drives the HTTP server loop and falcon routes the requests:
- "/" redirects to the form page
- everything else is served from the repo root (index.html, pyscript.toml,
  python/) with the isolation headers Pyodide needs
- Python sources and the PyScript config are sent uncached so edits show up
  on the next reload

Usage:
    FUNCIONARIOS_PORT=8080 python serve_hio.py
"""

import mimetypes
import os
import time

import falcon

from hio.base import tyming
from hio.core import http
from hio.core.http import serving

HOST = os.environ.get("FUNCIONARIOS_HOST", "")
PORT = int(os.environ.get("FUNCIONARIOS_PORT", "8000"))
INDEX_PAGE = "/index.html"

# Fetched by PyScript at runtime; browsers must not serve stale copies.
UNCACHED_SUFFIXES = (".py", ".toml", ".html")


class HeaderMiddleware:
    """Cross-origin isolation and cache headers on every response."""

    def process_response(self, req, resp, resource, req_succeeded):
        resp.set_header("Cross-Origin-Opener-Policy", "same-origin")
        resp.set_header("Cross-Origin-Embedder-Policy", "require-corp")
        resp.set_header("Access-Control-Allow-Origin", "*")
        if req.path.endswith(UNCACHED_SUFFIXES):
            resp.set_header("Cache-Control", "no-store")


class IndexRedirect:
    def on_get(self, req, resp):
        raise falcon.HTTPFound(INDEX_PAGE)


def create_app(static_dir=None):
    """Falcon app serving the form page and its Python sources."""
    mimetypes.add_type("application/wasm", ".wasm")
    mimetypes.add_type("application/toml", ".toml")
    mimetypes.add_type("text/x-python", ".py")

    app = falcon.App(middleware=[HeaderMiddleware()])
    app.add_route("/", IndexRedirect())

    sink = serving.StaticSink(
        staticDirPath=static_dir or os.path.dirname(os.path.abspath(__file__))
    )
    sink.StaticSinkBasePath = "/"
    app.add_sink(sink, prefix=sink.DefaultStaticSinkBasePath)
    return app


def run(host=HOST, port=PORT):
    """Serve until interrupted, ticking hio's Tymist alongside the server."""
    tymist = tyming.Tymist(tyme=0.0)
    server = http.Server(
        name="funcionarios",
        host=host,
        port=port,
        tymeout=0.5,
        app=create_app(),
        tymth=tymist.tymen(),
    )
    server.reopen()
    print(f"Serving employee form at http://localhost:{port}{INDEX_PAGE}")

    try:
        while True:
            server.service()
            time.sleep(0.0625)
            tymist.tick(tock=0.0625)
    except KeyboardInterrupt:
        print("\nServer stopped")
    finally:
        server.close()


if __name__ == "__main__":
    run()
