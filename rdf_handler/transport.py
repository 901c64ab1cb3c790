from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable

import anyio
from starlette.datastructures import MutableHeaders
from starlette.types import Message, Receive, Send

from .errors import RdfHandlerError, SerializeError, TransportError

logger = logging.getLogger(__name__)


class ResponseChannel:
    """One request's ASGI channels, shared by the app and the RDF response.

    Once the RDF response has started sending, whatever the downstream app
    sends afterwards is dropped.
    """

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self.body_complete = False
        self.body_reserved = False
        self.started = False
        self.claimed = False
        self.completed = False

    async def receive(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request" and not message.get("more_body", False):
            self.body_complete = True
        return message

    async def send(self, message: Message) -> None:
        if self.claimed:
            logger.debug("dropping %s, response already sent", message["type"])
            return
        if message["type"] == "http.response.start":
            self.started = True
        await self._send(message)

    async def stream(self, status_code: int, headers: MutableHeaders, body: AsyncIterator[Any]) -> None:
        if self.started or self.claimed:
            raise RuntimeError("response already started")

        failures: list[Exception] = []
        watch = self.body_complete or not self.body_reserved

        async with anyio.create_task_group() as tg:

            async def settle(func: Callable[[], Awaitable[None]], final: bool) -> None:
                try:
                    await func()
                except Exception as exc:
                    if not failures:
                        failures.append(exc)
                    tg.cancel_scope.cancel()
                    return
                if final:
                    tg.cancel_scope.cancel()

            async def pump() -> None:
                await self._pump(status_code, headers, body)

            tg.start_soon(settle, pump, True)
            if watch:
                tg.start_soon(settle, self._watch_disconnect, False)

        if failures:
            raise failures[0]

    async def _pump(self, status_code: int, headers: MutableHeaders, body: AsyncIterator[Any]) -> None:
        try:
            chunk = await self._next_chunk(body)
            self.claimed = True
            await self._transmit({"type": "http.response.start", "status": status_code, "headers": headers.raw})
            while chunk is not None:
                await self._transmit({"type": "http.response.body", "body": chunk, "more_body": True})
                chunk = await self._next_chunk(body)
            await self._transmit({"type": "http.response.body", "body": b"", "more_body": False})
            self.completed = True
        finally:
            aclose = getattr(body, "aclose", None)
            if aclose is not None:
                with anyio.CancelScope(shield=True):
                    await aclose()

    async def _next_chunk(self, body: AsyncIterator[Any]) -> bytes | None:
        try:
            chunk = await body.__anext__()
        except StopAsyncIteration:
            return None
        except RdfHandlerError:
            raise
        except Exception as exc:
            raise SerializeError(f"serializer failed: {exc}") from exc
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return bytes(chunk)

    async def _transmit(self, message: Message) -> None:
        try:
            await self._send(message)
        except Exception as exc:
            raise TransportError(f"could not write response: {exc}") from exc
        if message["type"] == "http.response.start":
            self.started = True

    async def _watch_disconnect(self) -> None:
        while True:
            message = await self.receive()
            if message["type"] == "http.disconnect":
                if self.completed:
                    return
                raise TransportError("client disconnected before the response was complete", status_code=499)
