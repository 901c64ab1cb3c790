from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Iterable

from pyoxigraph import DefaultGraph, Quad, Triple


def as_quad(element: Quad | Triple) -> Quad:
    if isinstance(element, Quad):
        return element
    return Quad(element.subject, element.predicate, element.object, DefaultGraph())


async def iterate(quads: Iterable[Any] | AsyncIterable[Any]) -> AsyncIterator[Any]:
    if hasattr(quads, "__aiter__"):
        async for quad in quads:
            yield quad
    else:
        for quad in quads:
            yield quad


async def from_stream(dataset: Any, quads: Iterable[Any] | AsyncIterable[Any]) -> Any:
    async for quad in iterate(quads):
        dataset.add(as_quad(quad))
    return dataset


async def to_stream(dataset: Any) -> AsyncIterator[Quad]:
    for quad in dataset:
        yield quad


async def to_default_graph(quads: Iterable[Any] | AsyncIterable[Any]) -> AsyncIterator[Quad]:
    async for quad in iterate(quads):
        yield Quad(quad.subject, quad.predicate, quad.object, DefaultGraph())
