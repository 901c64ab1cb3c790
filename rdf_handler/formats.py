from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable, Protocol

from pyoxigraph import BlankNode, DefaultGraph, Literal, NamedNode, Quad, RdfFormat, Triple, parse, serialize
from rdflib import BNode, Graph, Literal as RdfLiteral, URIRef

from .dataset import as_quad
from .negotiation import media_type_of

logger = logging.getLogger(__name__)

Parser = Callable[[AsyncIterable[bytes], dict[str, Any]], AsyncIterator[Quad]]
Serializer = Callable[[AsyncIterable[Any], dict[str, Any]], AsyncIterator[bytes]]

XSD_STRING = "http://www.w3.org/2001/XMLSchema#string"
JSON_LD = "application/ld+json"
OXIGRAPH_FORMATS = (
    RdfFormat.N_QUADS,
    RdfFormat.N_TRIPLES,
    RdfFormat.TURTLE,
    RdfFormat.TRIG,
    RdfFormat.N3,
    RdfFormat.RDF_XML,
)
# formats whose output can use relative IRIs and prefixes
_ABBREVIATING_FORMATS = {RdfFormat.TURTLE, RdfFormat.TRIG, RdfFormat.N3, RdfFormat.RDF_XML}


class Formats(Protocol):
    def has_parser(self, media_type: str) -> bool: ...

    def has_serializer(self, media_type: str) -> bool: ...

    def parse(self, media_type: str, stream: AsyncIterable[bytes], options: dict[str, Any]) -> AsyncIterator[Quad]: ...

    def serialize(self, media_type: str, quads: AsyncIterable[Any], options: dict[str, Any]) -> AsyncIterator[bytes]: ...

    def serializer_media_types(self) -> list[str]: ...


class FormatRegistry:
    def __init__(self) -> None:
        self._parsers: dict[str, Parser] = {}
        self._serializers: dict[str, Serializer] = {}

    def register_parser(self, media_type: str, parser: Parser) -> None:
        self._parsers[_normalize(media_type)] = parser

    def register_serializer(self, media_type: str, serializer: Serializer) -> None:
        self._serializers[_normalize(media_type)] = serializer

    def has_parser(self, media_type: str) -> bool:
        return media_type_of(media_type) in self._parsers

    def has_serializer(self, media_type: str) -> bool:
        return media_type_of(media_type) in self._serializers

    def parser_media_types(self) -> list[str]:
        return list(self._parsers)

    def serializer_media_types(self) -> list[str]:
        return list(self._serializers)

    def parse(self, media_type: str, stream: AsyncIterable[bytes], options: dict[str, Any]) -> AsyncIterator[Quad]:
        parser = self._parsers.get(media_type_of(media_type) or "")
        if parser is None:
            raise LookupError(f"no parser registered for `{media_type}`")
        return parser(stream, options)

    def serialize(self, media_type: str, quads: AsyncIterable[Any], options: dict[str, Any]) -> AsyncIterator[bytes]:
        serializer = self._serializers.get(media_type_of(media_type) or "")
        if serializer is None:
            raise LookupError(f"no serializer registered for `{media_type}`")
        return serializer(quads, options)


def _normalize(media_type: str) -> str:
    normalized = media_type_of(media_type)
    if not normalized:
        raise ValueError("media type must not be empty")
    return normalized


async def _read_all(stream: AsyncIterable[bytes]) -> bytes:
    chunks = []
    async for chunk in stream:
        chunks.append(chunk if isinstance(chunk, bytes) else str(chunk).encode("utf-8"))
    return b"".join(chunks)


def _collect_for(rdf_format: RdfFormat, elements: list[Any]) -> list[Quad] | list[Triple]:
    if rdf_format.supports_datasets:
        return [as_quad(element) for element in elements]
    triples: list[Triple] = []
    for element in elements:
        if isinstance(element, Triple):
            triples.append(element)
        elif isinstance(element.graph_name, DefaultGraph):
            triples.append(element.triple)
        else:
            raise ValueError(f"quad in named graph {element.graph_name} cannot be written as {rdf_format.name}")
    return triples


def oxigraph_parser(rdf_format: RdfFormat) -> Parser:
    async def parse_stream(stream: AsyncIterable[bytes], options: dict[str, Any]) -> AsyncIterator[Quad]:
        data = await _read_all(stream)
        for quad in parse(data, format=rdf_format, base_iri=options.get("base_iri")):
            yield quad

    return parse_stream


def oxigraph_serializer(rdf_format: RdfFormat) -> Serializer:
    async def serialize_stream(quads: AsyncIterable[Any], options: dict[str, Any]) -> AsyncIterator[bytes]:
        elements = [quad async for quad in quads]
        kwargs: dict[str, Any] = {}
        if rdf_format in _ABBREVIATING_FORMATS:
            if options.get("prefixes"):
                kwargs["prefixes"] = options["prefixes"]
            if options.get("base_iri"):
                kwargs["base_iri"] = options["base_iri"]
        yield serialize(_collect_for(rdf_format, elements), format=rdf_format, **kwargs)

    return serialize_stream


def _term_to_rdflib(term: Any) -> Any:
    if isinstance(term, NamedNode):
        return URIRef(term.value)
    if isinstance(term, BlankNode):
        return BNode(term.value)
    if isinstance(term, Literal):
        dt_value = term.datatype.value if term.datatype else None
        if term.language:
            return RdfLiteral(term.value, lang=term.language)
        if dt_value and dt_value != XSD_STRING:
            return RdfLiteral(term.value, datatype=URIRef(dt_value))
        return RdfLiteral(term.value)
    raise ValueError(f"cannot convert `{term}` to rdflib")


def _term_from_rdflib(term: Any) -> Any:
    if isinstance(term, URIRef):
        return NamedNode(str(term))
    if isinstance(term, BNode):
        return BlankNode(str(term))
    if isinstance(term, RdfLiteral):
        if term.language:
            return Literal(str(term), language=term.language)
        if term.datatype:
            return Literal(str(term), datatype=NamedNode(str(term.datatype)))
        return Literal(str(term))
    raise ValueError(f"cannot convert `{term!r}` from rdflib")


async def parse_jsonld(stream: AsyncIterable[bytes], options: dict[str, Any]) -> AsyncIterator[Quad]:
    data = await _read_all(stream)
    g = Graph()
    g.parse(data=data.decode("utf-8"), format="json-ld", publicID=options.get("base_iri"))
    for s, p, o in g:
        yield Quad(_term_from_rdflib(s), _term_from_rdflib(p), _term_from_rdflib(o), DefaultGraph())


async def serialize_jsonld(quads: AsyncIterable[Any], options: dict[str, Any]) -> AsyncIterator[bytes]:
    g = Graph()
    for prefix, namespace in (options.get("prefixes") or {}).items():
        g.bind(prefix, URIRef(namespace), override=True)
    async for quad in quads:
        graph_name = getattr(quad, "graph_name", None)
        if graph_name is not None and not isinstance(graph_name, DefaultGraph):
            raise ValueError(f"quad in named graph {graph_name} cannot be written as JSON-LD")
        g.add((_term_to_rdflib(quad.subject), _term_to_rdflib(quad.predicate), _term_to_rdflib(quad.object)))
    jsonld = g.serialize(format="json-ld")
    try:
        jsonld = json.dumps(json.loads(jsonld), indent=2, ensure_ascii=False)
    except ValueError:
        logger.debug("keeping rdflib JSON-LD output unformatted")
    yield jsonld.encode("utf-8")


def default_formats() -> FormatRegistry:
    registry = FormatRegistry()
    for rdf_format in OXIGRAPH_FORMATS:
        registry.register_parser(rdf_format.media_type, oxigraph_parser(rdf_format))
        registry.register_serializer(rdf_format.media_type, oxigraph_serializer(rdf_format))
    registry.register_parser(JSON_LD, parse_jsonld)
    registry.register_serializer(JSON_LD, serialize_jsonld)
    return registry
