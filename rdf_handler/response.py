from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Iterable

from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from .config import HandlerConfig
from .dataset import iterate, to_default_graph, to_stream
from .errors import NotAcceptable, RdfHandlerError, SerializeError
from .negotiation import best_match, media_type_of
from .options import BaseIriResolver, build_options
from .transport import ResponseChannel

logger = logging.getLogger(__name__)


class RdfResponse:
    """Sends datasets and quad streams back in the media type the client accepts.

    A ``content-type`` already present in ``headers`` forces the media type,
    otherwise the ``Accept`` header is negotiated against the serializers and
    the configured default is the fallback.
    """

    def __init__(
        self,
        request: Request,
        channel: ResponseChannel,
        config: HandlerConfig,
        get_base_iri: BaseIriResolver | None = None,
    ) -> None:
        self.request = request
        self.status_code = 200
        self.headers = MutableHeaders()
        self._channel = channel
        self.config = config
        self._get_base_iri = get_base_iri

    def negotiate(self) -> str:
        formats = self.config.formats
        offered = formats.serializer_media_types()
        forced = media_type_of(self.headers.get("content-type"))
        accepted = best_match(self.request.headers.get("accept"), offered)
        media_type = forced or accepted or self.config.default_media_type

        if not media_type or not formats.has_serializer(media_type):
            raise NotAcceptable(
                details={
                    "accept": self.request.headers.get("accept"),
                    "media_type": media_type,
                    "available": list(offered),
                }
            )
        return media_type

    async def dataset(self, dataset: Any, options: dict[str, Any] | None = None) -> None:
        await self.quad_stream(to_stream(dataset), options)

    async def quad_stream(self, quads: Iterable[Any] | AsyncIterable[Any], options: dict[str, Any] | None = None) -> None:
        media_type = self.negotiate()
        self.headers["content-type"] = f"{media_type}; charset=utf-8"
        logger.debug("sending %s to %s %s", media_type, self.request.method, self.request.url.path)

        stream = to_default_graph(quads) if self.config.send_triples else iterate(quads)
        serializer_options = await build_options(self.request, options, self._get_base_iri)
        try:
            body = self.config.formats.serialize(media_type, stream, serializer_options)
        except RdfHandlerError:
            raise
        except Exception as exc:
            raise SerializeError(f"could not serialize {media_type}: {exc}", {"media_type": media_type}) from exc

        await self._channel.stream(self.status_code, self.headers, body)
