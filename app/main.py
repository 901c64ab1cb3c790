from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import Response
from pyoxigraph import NamedNode, Quad, Store

from rdf_handler import (
    HandlerConfig,
    NotAcceptable,
    RdfHandlerError,
    RdfHandlerMiddleware,
    install_error_handler,
    to_default_graph,
)

logger = logging.getLogger(__name__)

BASE_PUBLIC = os.getenv("PUBLIC_BASE", "http://localhost:8000").rstrip("/")
DATA_DIR = os.getenv("DATA_DIR", "").strip()
DEFAULT_MEDIA_TYPE = os.getenv("RDF_DEFAULT_MEDIA_TYPE", "text/turtle").strip() or "text/turtle"
DATASET_MEDIA_TYPES = ("application/n-quads", "application/trig")
_STORE: Store | None = None
_STORE_LOCK = Lock()


def _store() -> Store:
    global _STORE
    with _STORE_LOCK:
        if _STORE is not None:
            return _STORE
        try:
            if DATA_DIR:
                Path(DATA_DIR).mkdir(parents=True, exist_ok=True)
                _STORE = Store(DATA_DIR)
            else:
                _STORE = Store()
        except OSError as exc:
            raise RdfHandlerError(
                500,
                "store_open_failed",
                "Store could not be opened",
                {"data_dir": DATA_DIR, "cause": str(exc)},
            ) from exc
        return _STORE


def _graph_iri(name: str) -> str:
    return f"{BASE_PUBLIC}/graphs/{name}"


def _graph_exists(store: Store, graph: NamedNode) -> bool:
    for _ in store.quads_for_pattern(None, None, None, graph):
        return True
    return False


def _pretty_json_response(content: Any, status_code: int = 200, media_type: str = "application/json") -> Response:
    return Response(
        content=json.dumps(content, indent=2, ensure_ascii=False),
        status_code=status_code,
        media_type=f"{media_type}; charset=utf-8",
    )


app = FastAPI(title="RDF graph service", version="0.1.0")
app.add_middleware(
    RdfHandlerMiddleware,
    config=HandlerConfig.from_env(default_media_type=DEFAULT_MEDIA_TYPE),
)
install_error_handler(app)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _pretty_json_response(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "Unexpected server error",
                "details": {"cause": str(exc)},
            }
        },
    )


@app.get("/graphs")
async def get_store(request: Request):
    response = request.state.rdf_response
    media_type = response.negotiate()
    if media_type not in DATASET_MEDIA_TYPES:
        raise NotAcceptable(
            "The whole store can only be served in a dataset format",
            {"media_type": media_type, "available": list(DATASET_MEDIA_TYPES)},
        )
    store = _store()
    await response.quad_stream(list(store.quads_for_pattern(None, None, None, None)))


@app.put("/graphs/{name}")
async def put_graph(name: str, request: Request):
    read_dataset = getattr(request.state, "dataset", None)
    if read_dataset is None:
        raise RdfHandlerError(
            415,
            "unsupported_media_type",
            "Request body must be RDF in a supported media type",
            {"content_type": request.headers.get("content-type")},
        )
    dataset = await read_dataset()

    store = _store()
    graph = NamedNode(_graph_iri(name))
    existed = _graph_exists(store, graph)
    if existed:
        store.remove_graph(graph)
    count = 0
    for quad in dataset:
        store.add(Quad(quad.subject, quad.predicate, quad.object, graph))
        count += 1

    return _pretty_json_response(
        {"graph": graph.value, "created": not existed, "triples": count},
        status_code=200 if existed else 201,
    )


@app.get("/graphs/{name}")
async def get_graph(name: str, request: Request):
    store = _store()
    graph = NamedNode(_graph_iri(name))
    quads = list(store.quads_for_pattern(None, None, None, graph))
    if not quads:
        raise RdfHandlerError(404, "graph_not_found", f"Graph `{name}` does not exist")
    await request.state.rdf_response.quad_stream(to_default_graph(quads))


@app.delete("/graphs/{name}")
def delete_graph(name: str):
    store = _store()
    graph = NamedNode(_graph_iri(name))
    if not _graph_exists(store, graph):
        raise RdfHandlerError(404, "graph_not_found", f"Graph `{name}` does not exist")
    store.remove_graph(graph)
    return _pretty_json_response({"graph": graph.value, "deleted": True})


@app.get("/healthz")
def healthz():
    return {"ok": True}
