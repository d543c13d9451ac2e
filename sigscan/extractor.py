"""Pattern-based extraction of Solidity declarations.

This is deliberately not a grammar. Parameter lists with nested parentheses,
string literals that contain keywords, and multi-line generic type expressions
are not handled; a parser-backed extractor can replace this class as long as
it returns the same `ContractRecord` shape.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .canonical import canonicalize, event_topic, function_selector
from .logging import get_logger
from .models import (
    CONTRACTS,
    ERROR,
    EVENT,
    FUNCTION,
    MUTABILITIES,
    VISIBILITIES,
    ContractRecord,
    Parameter,
    SignatureEntry,
)

SOURCE_SUFFIX = ".sol"

_IDENT = r"[A-Za-z_$][\w$]*"

_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.S)
_CONTRACT_RE = re.compile(rf"\bcontract\s+({_IDENT})")
_FUNCTION_RE = re.compile(rf"\bfunction\s+({_IDENT})\s*\(([^()]*)\)([^{{;]*)[{{;]")
_CONSTRUCTOR_RE = re.compile(r"\bconstructor\s*\(([^()]*)\)([^{;]*)\{")
_EVENT_RE = re.compile(rf"\bevent\s+({_IDENT})\s*\(([^()]*)\)\s*(?:anonymous\s*)?;")
_ERROR_RE = re.compile(rf"\berror\s+({_IDENT})\s*\(([^()]*)\)\s*;")
_RETURNS_RE = re.compile(r"\breturns\s*\(([^()]*)\)")
_BRACKETS_RE = re.compile(r"\s*\[\s*([^\]]*?)\s*\]")

# Tokens that may sit between a parameter's type and its name.
_NAME_SKIP = {"memory", "calldata", "storage", "payable", "indexed"}


class SourceReadError(OSError):
    """Raised when a source file cannot be read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to read {path}: {reason}")
        self.path = path
        self.reason = reason


def strip_comments(text: str) -> str:
    """Blank out comments while preserving line structure."""

    def _blank(match: re.Match[str]) -> str:
        return re.sub(r"[^\n]", " ", match.group(0))

    return _COMMENT_RE.sub(_blank, text)


def contract_name_from_path(path: str) -> str:
    name = Path(path).name
    if name.endswith(SOURCE_SUFFIX):
        return name[: -len(SOURCE_SUFFIX)]
    return Path(path).stem


def parse_parameters(param_string: str, *, allow_indexed: bool = False) -> List[Parameter]:
    """Split a flat parameter list into `Parameter` values."""
    if not param_string.strip():
        return []

    params: List[Parameter] = []
    for raw in param_string.split(","):
        entry = _BRACKETS_RE.sub(lambda m: f"[{m.group(1)}]", raw.strip())
        tokens = entry.split()
        indexed = False
        if allow_indexed and "indexed" in tokens:
            indexed = True
            tokens = [token for token in tokens if token != "indexed"]
        if not tokens:
            continue
        param_type = tokens[0].strip()
        if not param_type:
            continue
        name = next((token for token in tokens[1:] if token not in _NAME_SKIP), "")
        params.append(
            Parameter(name=name, type=param_type, indexed=indexed if allow_indexed else None)
        )
    return params


def _modifiers(tail: str) -> Tuple[Optional[str], Optional[str], str]:
    returns_match = _RETURNS_RE.search(tail)
    outputs = returns_match.group(1) if returns_match else ""
    head = tail[: returns_match.start()] if returns_match else tail
    tokens = re.findall(_IDENT, head)
    visibility = next((token for token in tokens if token in VISIBILITIES), None)
    mutability = next((token for token in tokens if token in MUTABILITIES), None)
    return visibility, mutability, outputs


class SignatureExtractor:
    """Turns Solidity source text into a `ContractRecord`."""

    def __init__(self) -> None:
        self.logger = get_logger("extractor")

    def extract_file(self, path: Path, *, category: str = CONTRACTS) -> Optional[ContractRecord]:
        """Read and extract one file, stamping its modification time."""
        try:
            text = path.read_text(encoding="utf-8")
            stat_result = path.stat()
        except UnicodeDecodeError as exc:
            raise SourceReadError(str(path), "not valid UTF-8") from exc
        except OSError as exc:
            raise SourceReadError(str(path), exc.strerror or str(exc)) from exc

        record = self.extract(text, str(path), category=category)
        if record is not None:
            record.last_modified = datetime.fromtimestamp(stat_result.st_mtime, UTC)
        return record

    def extract(self, text: str, path: str, *, category: str = CONTRACTS) -> Optional[ContractRecord]:
        """Return the declarations found in `text`, or None when there are none."""
        source = strip_comments(text)
        contract_match = _CONTRACT_RE.search(source)
        name = contract_match.group(1) if contract_match else contract_name_from_path(path)

        functions = self._functions(source, name, path)
        events = self._events(source, name, path)
        errors = self._errors(source, name, path)

        if contract_match is None and not (functions or events or errors):
            self.logger.debug("No declarations found in %s", path)
            return None

        return ContractRecord(
            name=name,
            file_path=path,
            category=category,
            functions=functions,
            events=events,
            errors=errors,
        )

    def _functions(self, source: str, contract: str, path: str) -> List[SignatureEntry]:
        functions: List[SignatureEntry] = []
        for match in _FUNCTION_RE.finditer(source):
            name, inputs_str, tail = match.groups()
            visibility, mutability, outputs_str = _modifiers(tail)
            functions.append(
                self._callable(
                    name,
                    parse_parameters(inputs_str),
                    parse_parameters(outputs_str),
                    visibility or "public",
                    mutability or "nonpayable",
                    contract,
                    path,
                )
            )

        constructor = _CONSTRUCTOR_RE.search(source)
        if constructor is not None:
            inputs_str, tail = constructor.groups()
            visibility, _, _ = _modifiers(tail)
            payable = "payable" in re.findall(_IDENT, tail)
            functions.append(
                self._callable(
                    "constructor",
                    parse_parameters(inputs_str),
                    [],
                    visibility or "public",
                    "payable" if payable else "nonpayable",
                    contract,
                    path,
                )
            )
        return functions

    @staticmethod
    def _callable(
        name: str,
        inputs: Sequence[Parameter],
        outputs: Sequence[Parameter],
        visibility: str,
        mutability: str,
        contract: str,
        path: str,
    ) -> SignatureEntry:
        signature = canonicalize(name, inputs)
        return SignatureEntry(
            kind=FUNCTION,
            name=name,
            signature=signature,
            selector=function_selector(signature),
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            visibility=visibility,
            state_mutability=mutability,
            contract_name=contract,
            file_path=path,
        )

    @staticmethod
    def _events(source: str, contract: str, path: str) -> List[SignatureEntry]:
        events: List[SignatureEntry] = []
        for match in _EVENT_RE.finditer(source):
            name, inputs_str = match.groups()
            inputs = parse_parameters(inputs_str, allow_indexed=True)
            signature = canonicalize(name, inputs)
            events.append(
                SignatureEntry(
                    kind=EVENT,
                    name=name,
                    signature=signature,
                    selector=event_topic(signature),
                    inputs=tuple(inputs),
                    contract_name=contract,
                    file_path=path,
                )
            )
        return events

    @staticmethod
    def _errors(source: str, contract: str, path: str) -> List[SignatureEntry]:
        errors: List[SignatureEntry] = []
        for match in _ERROR_RE.finditer(source):
            name, inputs_str = match.groups()
            inputs = parse_parameters(inputs_str)
            signature = canonicalize(name, inputs)
            errors.append(
                SignatureEntry(
                    kind=ERROR,
                    name=name,
                    signature=signature,
                    selector=function_selector(signature),
                    inputs=tuple(inputs),
                    contract_name=contract,
                    file_path=path,
                )
            )
        return errors


__all__ = [
    "SOURCE_SUFFIX",
    "SignatureExtractor",
    "SourceReadError",
    "contract_name_from_path",
    "parse_parameters",
    "strip_comments",
]
