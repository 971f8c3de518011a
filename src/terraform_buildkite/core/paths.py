"""Dotted path lookup into JSON-like documents.

Path syntax:
    ``a.b``        key ``b`` of object ``a``
    ``items.0``    first element of array ``items``
    ``items.#``    number of elements of ``items``
    ``items.#.id`` ``id`` of every element of ``items`` (elements without it are skipped)
"""

from typing import Any


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def lookup(document: Any, path: str) -> Any:
    """Resolve ``path`` in ``document``; returns MISSING when it does not exist."""
    if not path:
        return document
    return _walk(document, path.split("."))


def _walk(current: Any, segments: list[str]) -> Any:
    for i, segment in enumerate(segments):
        if isinstance(current, list):
            if segment == "#":
                rest = segments[i + 1 :]
                if not rest:
                    return len(current)
                mapped = [_walk(item, rest) for item in current]
                return [value for value in mapped if value is not MISSING]
            if not segment.lstrip("-").isdigit():
                return MISSING
            index = int(segment)
            if not -len(current) <= index < len(current):
                return MISSING
            current = current[index]
        elif isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        else:
            return MISSING
    return current
