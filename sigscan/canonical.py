"""Canonical signature assembly and selector hashing."""

from __future__ import annotations

import re
from typing import Iterable

from eth_utils import keccak

from .models import Parameter

_WHITESPACE = re.compile(r"\s+")
_EMPTY_BRACKETS = re.compile(r"\[\s*\]")


def normalize_type(raw: str) -> str:
    """Strip whitespace from a declared type, so `uint256 [ ]` becomes `uint256[]`."""
    return _WHITESPACE.sub("", _EMPTY_BRACKETS.sub("[]", raw))


def canonicalize(name: str, params: Iterable[Parameter]) -> str:
    """Return `name(type,type,...)` with parameter names and markers dropped."""
    types = ",".join(normalize_type(param.type) for param in params)
    return f"{name}({types})"


def function_selector(signature: str) -> str:
    """First four bytes of the Keccak-256 digest, as `0x` + 8 hex chars."""
    return "0x" + keccak(text=signature)[:4].hex()


def event_topic(signature: str) -> str:
    """Full Keccak-256 digest, as `0x` + 64 hex chars."""
    return "0x" + keccak(text=signature).hex()


__all__ = ["canonicalize", "event_topic", "function_selector", "normalize_type"]
