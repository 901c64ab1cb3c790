"""Shared fixtures and helpers for the rdf_handler tests."""

import json
from typing import Any, Callable

import anyio
import pytest
from fastapi import FastAPI

from rdf_handler import RdfHandlerMiddleware, install_error_handler

NT = "<http://example.org/subject> <http://example.org/predicate> <http://example.org/object> .\n"
NQ = (
    "<http://example.org/subject> <http://example.org/predicate> <http://example.org/object> "
    "<http://example.org/graph> .\n"
)
TTL = "@prefix ex: <http://example.org/> .\nex:subject ex:predicate ex:object .\n"


class FormatsMock:
    """Registry stand-in that records what the middleware hands to it."""

    def __init__(self, parse: Callable | None = None, serialize: Callable | None = None, media_types=("text/plain",)):
        self._parse = parse
        self._serialize = serialize
        self.media_types = list(media_types)
        self.parse_calls: list[tuple[str, dict]] = []
        self.serialize_calls: list[tuple[str, dict]] = []

    def has_parser(self, media_type: str) -> bool:
        return self._parse is not None

    def has_serializer(self, media_type: str) -> bool:
        return self._serialize is not None and media_type in self.media_types

    def serializer_media_types(self) -> list[str]:
        return list(self.media_types) if self._serialize is not None else []

    def parse(self, media_type, stream, options):
        self.parse_calls.append((media_type, options))
        return self._parse(stream, options)

    def serialize(self, media_type, quads, options):
        self.serialize_calls.append((media_type, options))
        return self._serialize(quads, options)


async def read_text(stream) -> str:
    return b"".join([chunk async for chunk in stream]).decode("utf-8")


async def empty_parse(stream, options):
    await read_text(stream)
    return
    yield


async def echo_serialize(quads, options):
    data = [str(quad) async for quad in quads]
    yield json.dumps({"data": data}).encode("utf-8")


def make_app(handler: Callable, **options: Any) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RdfHandlerMiddleware, **options)
    install_error_handler(app)
    app.add_api_route("/", handler, methods=["GET", "POST", "PUT"])
    return app


class FakeClient:
    def __init__(self, fail_on: str | None = None, disconnect: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail_on = fail_on
        self.disconnect = disconnect
        self.done = anyio.Event()

    async def receive(self) -> dict:
        if self.disconnect:
            return {"type": "http.disconnect"}
        await self.done.wait()
        return {"type": "http.disconnect"}

    async def send(self, message: dict) -> None:
        if message["type"] == self.fail_on:
            raise OSError("connection reset")
        self.sent.append(message)
        if message["type"] == "http.response.body" and not message.get("more_body", False):
            self.done.set()


@pytest.fixture
def captured() -> dict:
    return {}
