"""Renderer implementations and format lookup."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List

from .base import (
    ExportDocument,
    RenderedContract,
    SignatureRenderer,
    UnsupportedFormatError,
)
from .structured import CsvRenderer, JsonRenderer
from .templated import MarkdownRenderer, TextRenderer

_ENTRY_POINT_GROUP = "sigscan.renderers"

_BUILTIN_FACTORIES: dict[str, Callable[[], SignatureRenderer]] = {
    "txt": TextRenderer,
    "json": JsonRenderer,
    "csv": CsvRenderer,
    "md": MarkdownRenderer,
}

_ALIASES = {
    "text": "txt",
    "plain-text": "txt",
    "markdown": "md",
}


def normalize_format(fmt: str) -> str:
    key = fmt.strip().lower().lstrip(".")
    return _ALIASES.get(key, key)


def available_formats() -> List[str]:
    """Return built-in format keys followed by plugin-provided ones."""
    formats = list(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        key = normalize_format(entry.name)
        if key not in formats:
            formats.append(key)
    return formats


def get_renderer(fmt: str) -> SignatureRenderer:
    """Return a renderer for `fmt`, raising UnsupportedFormatError when none exists."""
    key = normalize_format(fmt)
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is not None:
        return factory()

    for entry in _iter_entry_points():
        if normalize_format(entry.name) != key:
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failure
            raise RuntimeError(f"Failed to load renderer entry point '{entry.name}': {exc}") from exc
        return _coerce_renderer(loaded)

    raise UnsupportedFormatError(fmt)


def _coerce_renderer(obj: object) -> SignatureRenderer:
    if isinstance(obj, SignatureRenderer):
        return obj
    if isinstance(obj, type) and issubclass(obj, SignatureRenderer):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, SignatureRenderer):
            return instance
    raise TypeError("Renderer entry point must be a SignatureRenderer subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "CsvRenderer",
    "ExportDocument",
    "JsonRenderer",
    "MarkdownRenderer",
    "RenderedContract",
    "SignatureRenderer",
    "TextRenderer",
    "UnsupportedFormatError",
    "available_formats",
    "get_renderer",
    "normalize_format",
]
