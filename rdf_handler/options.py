from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

from starlette.requests import Request

BaseIriResolver = Callable[[Request], str | Awaitable[str]]


def _request_url(request: Request) -> str:
    return str(request.url)


def base_iri_resolver(base_iri_from_request: bool | BaseIriResolver | None) -> BaseIriResolver | None:
    if base_iri_from_request is True:
        return _request_url
    if callable(base_iri_from_request):
        return base_iri_from_request
    return None


async def build_options(
    request: Request,
    user_options: dict[str, Any] | None,
    get_base_iri: BaseIriResolver | None,
) -> dict[str, Any]:
    options = dict(user_options or {})
    if get_base_iri is not None:
        base_iri = get_base_iri(request)
        if inspect.isawaitable(base_iri):
            base_iri = await base_iri
        options["base_iri"] = base_iri
    return options
