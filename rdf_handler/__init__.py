"""Content negotiation, parsing and serialization of RDF request and response bodies.

Example:
    from fastapi import FastAPI, Request
    from rdf_handler import RdfHandlerMiddleware

    app = FastAPI()
    app.add_middleware(RdfHandlerMiddleware, default_media_type="text/turtle")

    @app.post("/echo")
    async def echo(request: Request):
        dataset = await request.state.dataset()
        await request.state.rdf_response.dataset(dataset)

RDF responses are written straight to the ASGI send channel the middleware
wraps, so middleware added before `RdfHandlerMiddleware` (and therefore running
inside it, such as GZip or CORS) never sees them. Add `RdfHandlerMiddleware`
first so it is the innermost user middleware.
"""

from .config import HandlerConfig
from .dataset import from_stream, to_default_graph, to_stream
from .errors import (
    NotAcceptable,
    ParseError,
    RdfHandlerError,
    SerializeError,
    TransportError,
    install_error_handler,
)
from .formats import FormatRegistry, Formats, default_formats
from .middleware import RdfHandlerMiddleware, attach, is_attached
from .negotiation import best_match, media_type_of
from .options import build_options
from .request import RequestDecoder
from .response import RdfResponse

__all__ = [
    "HandlerConfig",
    "FormatRegistry",
    "Formats",
    "default_formats",
    "RdfHandlerMiddleware",
    "attach",
    "is_attached",
    "RequestDecoder",
    "RdfResponse",
    "build_options",
    "best_match",
    "media_type_of",
    "from_stream",
    "to_stream",
    "to_default_graph",
    "RdfHandlerError",
    "ParseError",
    "NotAcceptable",
    "SerializeError",
    "TransportError",
    "install_error_handler",
]
