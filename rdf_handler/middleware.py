from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from .config import HandlerConfig
from .negotiation import media_type_of
from .options import base_iri_resolver
from .request import RequestDecoder
from .response import RdfResponse
from .transport import ResponseChannel

logger = logging.getLogger(__name__)

CAPABILITIES = ("dataset", "quad_stream", "rdf_response")


def is_attached(scope: Scope) -> bool:
    state = scope.get("state") or {}
    return any(name in state for name in CAPABILITIES)


def attach(scope: Scope, receive: Receive, send: Send, config: HandlerConfig | None = None) -> tuple[Receive, Send]:
    """Install the RDF capabilities on the request state unless already present.

    Returns the channels the downstream app must be called with; they are the
    given ones when nothing was installed.
    """
    if is_attached(scope):
        return receive, send

    config = config or HandlerConfig()
    get_base_iri = base_iri_resolver(config.base_iri_from_request)
    state = scope.setdefault("state", {})
    channel = ResponseChannel(receive, send)
    request = Request(scope, channel.receive)

    state["rdf_response"] = RdfResponse(request, channel, config, get_base_iri)

    media_type = media_type_of(request.headers.get("content-type"))
    # only process body if content type header was set
    if not media_type:
        return channel.receive, channel.send
    # no decoder at all when there is no matching parser
    if not config.formats.has_parser(media_type):
        logger.debug("no parser for %s, request body left untouched", media_type)
        return channel.receive, channel.send

    decoder = RequestDecoder(request, media_type, config, get_base_iri)
    channel.body_reserved = True
    state["dataset"] = decoder.dataset
    state["quad_stream"] = decoder.quad_stream
    return channel.receive, channel.send


class RdfHandlerMiddleware:
    def __init__(self, app: ASGIApp, config: HandlerConfig | None = None, **options: Any) -> None:
        self.app = app
        if config is None:
            config = HandlerConfig(**options)
        elif options:
            config = replace(config, **options)
        self.config = config

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        receive, send = attach(scope, receive, send, self.config)
        await self.app(scope, receive, send)
