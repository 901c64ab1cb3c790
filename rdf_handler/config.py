from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from pyoxigraph import Dataset

from .formats import Formats, default_formats
from .options import BaseIriResolver

TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in TRUTHY


@dataclass(frozen=True)
class HandlerConfig:
    factory: Callable[[], Any] = Dataset
    formats: Formats = field(default_factory=default_formats)
    default_media_type: str | None = None
    base_iri_from_request: bool | BaseIriResolver = False
    send_triples: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> HandlerConfig:
        config = cls(
            default_media_type=(os.getenv("RDF_DEFAULT_MEDIA_TYPE") or "").strip() or None,
            base_iri_from_request=_env_flag("RDF_BASE_IRI_FROM_REQUEST"),
            send_triples=_env_flag("RDF_SEND_TRIPLES"),
        )
        return replace(config, **overrides)
