"""Shared template engine pieces: errors and payload lookup."""

from collections.abc import Mapping, Sequence
from typing import Any


class TemplateError(Exception):
    """Base exception for template rendering errors."""

    pass


class RenderError(TemplateError):
    """Rendering aborted; no receipt is produced."""

    pass


class EvalError(RenderError):
    """Malformed condition, unknown identifier or incompatible comparison."""

    pass


class SubstitutionTypeError(RenderError):
    """A placeholder resolved to a value that cannot be used in that field."""

    pass


class EncodingError(TemplateError):
    """A primitive could not be converted to printer commands."""

    pass


class _Missing:
    """Sentinel for a path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def resolve_path(data: Any, path: str) -> Any:
    """Look up a dotted path (``store.name``, ``items.0.name``) in a payload.

    Integer segments index into lists. Returns MISSING when any segment
    does not resolve.
    """
    current = data
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdigit() or int(segment) >= len(current):
                return MISSING
            index = int(segment)
            current = current[index]
        else:
            return MISSING
    return current
