"""Base classes and view models for signature renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from ..models import SignatureEntry


class UnsupportedFormatError(ValueError):
    """Raised when an export names a format no renderer handles."""

    def __init__(self, fmt: str) -> None:
        super().__init__(f"Unsupported format: {fmt}")
        self.format = fmt


@dataclass
class RenderedContract:
    """One contract's surviving entries in a single output file."""

    name: str
    file_path: str
    category: str
    last_modified: Optional[datetime] = None
    functions: List[SignatureEntry] = field(default_factory=list)
    events: List[SignatureEntry] = field(default_factory=list)
    errors: List[SignatureEntry] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.file_path).name


@dataclass
class ExportDocument:
    """Everything a renderer needs to produce one output file."""

    category: str
    project_kind: str
    root_path: str
    generated_at: datetime
    contracts: List[RenderedContract]
    deduplicate: bool = True
    updated_at: Optional[datetime] = None

    def counts(self) -> Dict[str, int]:
        return {
            "totalContracts": len(self.contracts),
            "totalFunctions": sum(len(item.functions) for item in self.contracts),
            "totalEvents": sum(len(item.events) for item in self.contracts),
            "totalErrors": sum(len(item.errors) for item in self.contracts),
        }


class SignatureRenderer(ABC):
    """Contract for renderers that serialize an `ExportDocument`."""

    format: str = ""
    extension: str = ""

    @abstractmethod
    def render(self, document: ExportDocument) -> str:
        """Return the full file content for `document`."""


def isoformat(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.isoformat().replace("+00:00", "Z")


def update_note(updated_at: datetime) -> str:
    return f"Updated: {isoformat(updated_at)} (previous content replaced)"
