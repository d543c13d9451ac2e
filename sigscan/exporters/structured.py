"""JSON and CSV renderers."""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, Iterable, List

from ..models import ERROR, EVENT, FUNCTION, Parameter, SignatureEntry
from .base import ExportDocument, RenderedContract, SignatureRenderer, isoformat, update_note

CSV_HEADER = (
    "Type",
    "Contract",
    "Name",
    "Signature",
    "Selector",
    "Visibility",
    "StateMutability",
    "FilePath",
    "Category",
)

_KIND_LABELS = {FUNCTION: "Function", EVENT: "Event", ERROR: "Error"}


def _parameter(param: Parameter) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": param.name, "type": param.type}
    if param.indexed is not None:
        data["indexed"] = param.indexed
    return data


def _entry(entry: SignatureEntry, contract: RenderedContract) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": entry.name,
        "signature": entry.signature,
        "selector": entry.selector,
        "inputs": [_parameter(param) for param in entry.inputs],
    }
    if entry.kind == FUNCTION:
        data["outputs"] = [_parameter(param) for param in entry.outputs]
        data["visibility"] = entry.visibility
        data["stateMutability"] = entry.state_mutability
    data["contract"] = contract.name
    data["filePath"] = contract.file_path
    return data


class JsonRenderer(SignatureRenderer):
    format = "json"
    extension = "json"

    def render(self, document: ExportDocument) -> str:
        metadata: Dict[str, Any] = {
            "category": document.category,
            "generatedAt": isoformat(document.generated_at),
            "projectType": document.project_kind,
            "projectPath": document.root_path,
            **document.counts(),
        }
        if document.updated_at is not None:
            metadata["lastUpdated"] = isoformat(document.updated_at)
            metadata["note"] = update_note(document.updated_at)

        payload: Dict[str, Any] = {"metadata": metadata}
        if document.deduplicate:
            payload["signatures"] = {
                "functions": [_entry(e, c) for c in document.contracts for e in c.functions],
                "events": [_entry(e, c) for c in document.contracts for e in c.events],
                "errors": [_entry(e, c) for c in document.contracts for e in c.errors],
            }
        else:
            payload["contracts"] = [
                {
                    "name": contract.name,
                    "filePath": contract.file_path,
                    "category": contract.category,
                    "lastModified": isoformat(contract.last_modified) or None,
                    "functions": [_entry(e, contract) for e in contract.functions],
                    "events": [_entry(e, contract) for e in contract.events],
                    "errors": [_entry(e, contract) for e in contract.errors],
                }
                for contract in document.contracts
            ]
        return json.dumps(payload, indent=2) + "\n"


class CsvRenderer(SignatureRenderer):
    format = "csv"
    extension = "csv"

    def render(self, document: ExportDocument) -> str:
        buffer = io.StringIO()
        if document.updated_at is not None:
            buffer.write(f"# {update_note(document.updated_at)}\n")
        buffer.write(",".join(CSV_HEADER) + "\n")
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for contract in document.contracts:
            writer.writerows(self._rows(contract))
        return buffer.getvalue()

    @staticmethod
    def _rows(contract: RenderedContract) -> Iterable[List[str]]:
        for entry in (*contract.functions, *contract.events, *contract.errors):
            yield [
                _KIND_LABELS[entry.kind],
                contract.name,
                entry.name,
                entry.signature,
                entry.selector,
                entry.visibility or "",
                entry.state_mutability or "",
                contract.file_path,
                contract.category,
            ]
