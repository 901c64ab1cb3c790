from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class MediaRange:
    type: str
    subtype: str
    q: float
    index: int

    def specificity(self, media_type: str) -> int:
        """Score how closely this range matches ``media_type``; -1 when it does not match."""
        type_, _, subtype = media_type.partition("/")
        if self.type == "*" and self.subtype == "*":
            return 0
        if self.type != type_:
            return -1
        if self.subtype == "*":
            return 1
        if self.subtype != subtype:
            return -1
        return 2


def media_type_of(header: str | None) -> str | None:
    if not header:
        return None
    token = header.split(";", 1)[0].strip().lower()
    return token or None


def _parse_q(raw: str) -> float:
    try:
        q = float(raw)
    except ValueError:
        return 0.0
    if q < 0 or q > 1:
        return 0.0
    return q


def parse_accept(header: str | None) -> list[MediaRange]:
    ranges: list[MediaRange] = []
    if not header:
        return ranges
    for index, part in enumerate(header.split(",")):
        token, *params = (piece.strip() for piece in part.split(";"))
        type_, sep, subtype = token.lower().partition("/")
        if not sep or not type_ or not subtype:
            continue
        if type_ == "*" and subtype != "*":
            continue
        q = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                q = _parse_q(value.strip())
        ranges.append(MediaRange(type=type_, subtype=subtype, q=q, index=index))
    return ranges


def best_match(accept: str | None, offered: Iterable[str]) -> str | None:
    offered = list(offered)
    if not offered:
        return None
    ranges = parse_accept(accept)
    if not ranges:
        # an absent Accept header accepts anything
        return offered[0] if not (accept or "").strip() else None

    candidates: list[tuple[float, int, int, int, str]] = []
    for position, media_type in enumerate(offered):
        normalized = media_type.lower()
        best: tuple[int, float, int] | None = None
        for media_range in ranges:
            specificity = media_range.specificity(normalized)
            if specificity < 0:
                continue
            if best is None or specificity > best[0]:
                best = (specificity, media_range.q, media_range.index)
        if best is None or best[1] <= 0:
            continue
        specificity, q, index = best
        candidates.append((-q, -specificity, index, position, media_type))

    if not candidates:
        return None
    return min(candidates)[-1]
