from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

from pyoxigraph import Quad
from starlette.requests import ClientDisconnect, Request

from .config import HandlerConfig
from .dataset import from_stream
from .errors import ParseError, RdfHandlerError, TransportError
from .options import BaseIriResolver, build_options

logger = logging.getLogger(__name__)


def _retrieve_failure(future: asyncio.Future) -> None:
    # the parse outlives a cancelled handler; nobody may be left to await it
    if not future.cancelled() and future.exception() is not None:
        logger.debug("request body parse failed: %r", future.exception())


class RequestDecoder:
    """Lazy access to the RDF payload of a single request.

    The body can be read once, so ``dataset()`` is memoized: every call, even a
    concurrent one, waits for the same parse. ``quad_stream()`` is not; it
    hands out the raw element stream and may be consumed only once.
    """

    def __init__(
        self,
        request: Request,
        media_type: str,
        config: HandlerConfig,
        get_base_iri: BaseIriResolver | None = None,
    ) -> None:
        self.request = request
        self.media_type = media_type
        self.config = config
        self._get_base_iri = get_base_iri
        self._dataset: asyncio.Future | None = None
        self._consumed = False

    async def dataset(self, options: dict[str, Any] | None = None) -> Any:
        if self._dataset is None:
            self._dataset = asyncio.ensure_future(self._read_dataset(options))
            self._dataset.add_done_callback(_retrieve_failure)
        return await asyncio.shield(self._dataset)

    def quad_stream(self, options: dict[str, Any] | None = None) -> AsyncIterator[Quad]:
        return self._read_quads(options)

    async def _read_dataset(self, options: dict[str, Any] | None) -> Any:
        parser_options = await build_options(self.request, options, self._get_base_iri)
        dataset = await from_stream(self.config.factory(), self._parse(parser_options))
        logger.debug("decoded %s request body into %s", self.media_type, type(dataset).__name__)
        return dataset

    async def _read_quads(self, options: dict[str, Any] | None) -> AsyncIterator[Quad]:
        parser_options = await build_options(self.request, options, self._get_base_iri)
        async for quad in self._parse(parser_options):
            yield quad

    async def _parse(self, options: dict[str, Any]) -> AsyncIterator[Quad]:
        if self._consumed:
            raise RuntimeError("request body already consumed")
        self._consumed = True
        try:
            quads = self.config.formats.parse(self.media_type, self._body(), options)
            try:
                async for quad in quads:
                    yield quad
            finally:
                aclose = getattr(quads, "aclose", None)
                if aclose is not None:
                    await aclose()
        except RdfHandlerError:
            raise
        except Exception as exc:
            raise ParseError(
                f"could not parse {self.media_type} request body: {exc}",
                {"media_type": self.media_type},
            ) from exc

    async def _body(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.request.stream():
                yield chunk
        except ClientDisconnect as exc:
            raise TransportError("client disconnected while sending the request body", status_code=400) from exc
