from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import Response

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RdfHandlerError(Exception):
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ParseError(RdfHandlerError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(400, "parse_error", message, details)


class NotAcceptable(RdfHandlerError):
    def __init__(self, message: str = "no matching serializer found", details: dict[str, Any] | None = None) -> None:
        super().__init__(406, "not_acceptable", message, details)


class SerializeError(RdfHandlerError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(500, "serialize_error", message, details)


class TransportError(RdfHandlerError):
    def __init__(self, message: str, details: dict[str, Any] | None = None, status_code: int = 500) -> None:
        super().__init__(status_code, "transport_error", message, details)


def _error_response(exc: RdfHandlerError) -> Response:
    payload = {
        "error": {
            "code": exc.code,
            "message": exc.message,
            "details": exc.details or {},
        }
    }
    return Response(
        content=json.dumps(payload, indent=2, ensure_ascii=False),
        status_code=exc.status_code,
        media_type="application/json; charset=utf-8",
    )


def install_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RdfHandlerError)
    async def rdf_handler_error(request: Request, exc: RdfHandlerError):
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc)
