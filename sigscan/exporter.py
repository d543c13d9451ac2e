"""Category views, deduplication and file output for scanned signatures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_FORMATS, SigScanConfig
from .exporters import (
    ExportDocument,
    RenderedContract,
    UnsupportedFormatError,
    get_renderer,
)
from .logging import get_logger, log_exception
from .models import (
    CONTRACTS,
    ERROR,
    EVENT,
    FUNCTION,
    LIBS,
    TESTS,
    ContractRecord,
    ProjectSnapshot,
    SignatureEntry,
)

# `scripts` is scanned but never exported on its own.
EXPORT_CATEGORIES: Tuple[str, ...] = (CONTRACTS, LIBS, TESTS)


@dataclass
class ExportOptions:
    """Controls which entries are exported and how files are laid out."""

    formats: Sequence[str] = DEFAULT_FORMATS
    output_dir: Path = Path("signatures")
    include_internal: bool = False
    include_private: bool = False
    include_events: bool = True
    include_errors: bool = True
    separate_by_category: bool = True
    deduplicate: bool = True
    update_existing: bool = True

    @classmethod
    def from_config(cls, config: SigScanConfig) -> "ExportOptions":
        return cls(
            formats=list(config.output.formats),
            output_dir=config.output_dir,
            include_internal=config.include.internal,
            include_private=config.include.private,
            include_events=config.include.events,
            include_errors=config.include.errors,
            separate_by_category=config.export.separate_by_category,
            deduplicate=config.export.deduplicate,
            update_existing=config.export.update_existing,
        )


@dataclass
class ExportReport:
    """Files written by one export call and the formats that failed."""

    written: List[Path] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def should_include_function(
    visibility: Optional[str], include_internal: bool = False, include_private: bool = False
) -> bool:
    """Public and external always pass; internal and private only when asked for."""
    if visibility in ("public", "external"):
        return True
    if visibility == "internal":
        return include_internal
    if visibility == "private":
        return include_private
    return False


def format_timestamp(value: datetime | None = None) -> str:
    """`2023-01-01T12-00-00` style stamp for legacy file names."""
    value = value or datetime.now(UTC)
    return value.strftime("%Y-%m-%dT%H-%M-%S")


def select_contracts(
    records: Iterable[ContractRecord], options: ExportOptions, root: Path
) -> List[RenderedContract]:
    """Apply visibility/kind filters and, when deduplicating, first-seen-wins per kind."""
    seen: Dict[str, Set[str]] = {FUNCTION: set(), EVENT: set(), ERROR: set()}
    selected: List[RenderedContract] = []
    for record in records:
        functions = [
            entry
            for entry in record.functions
            if should_include_function(
                entry.visibility, options.include_internal, options.include_private
            )
        ]
        events = list(record.events) if options.include_events else []
        errors = list(record.errors) if options.include_errors else []

        if options.deduplicate:
            functions = _first_seen(functions, seen[FUNCTION])
            events = _first_seen(events, seen[EVENT])
            errors = _first_seen(errors, seen[ERROR])
            if not (functions or events or errors):
                continue

        selected.append(
            RenderedContract(
                name=record.name,
                file_path=_relative(record.file_path, root),
                category=record.category,
                last_modified=record.last_modified,
                functions=functions,
                events=events,
                errors=errors,
            )
        )
    return selected


def _first_seen(entries: Iterable[SignatureEntry], seen: Set[str]) -> List[SignatureEntry]:
    kept: List[SignatureEntry] = []
    for entry in entries:
        if entry.signature in seen:
            continue
        seen.add(entry.signature)
        kept.append(entry)
    return kept


def _relative(path: str, root: Path) -> str:
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return Path(path).as_posix()


class SignatureExporter:
    """Renders a snapshot into one file per requested format and category."""

    def __init__(self) -> None:
        self.logger = get_logger("exporter")

    def export(self, snapshot: ProjectSnapshot, options: ExportOptions) -> ExportReport:
        """Write every requested format; a failing format never blocks the others."""
        output_dir = Path(options.output_dir)
        report = ExportReport()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            message = f"Cannot create output directory {output_dir}: {exc.strerror or exc}"
            self.logger.error("%s", message)
            report.failures.update({fmt: message for fmt in options.formats})
            return report
        now = datetime.now(UTC)

        views = self._views(snapshot, options, now)
        for fmt in options.formats:
            try:
                renderer = get_renderer(fmt)
            except UnsupportedFormatError as exc:
                self.logger.error("%s", exc)
                report.failures[fmt] = str(exc)
                continue

            for stem, document in views:
                target = output_dir / f"{stem}.{renderer.extension}"
                try:
                    target.write_text(renderer.render(document), encoding="utf-8")
                except Exception as exc:  # pragma: no cover - renderer or filesystem failure
                    log_exception(self.logger, f"Failed to write {target}", exc)
                    report.failures[fmt] = str(exc)
                    break
                self.logger.debug("Wrote %s", target)
                report.written.append(target)

        self.logger.info("Exported %d files to %s", len(report.written), output_dir)
        return report

    def _views(
        self, snapshot: ProjectSnapshot, options: ExportOptions, now: datetime
    ) -> List[Tuple[str, ExportDocument]]:
        root = Path(snapshot.root_path)
        generated_at = snapshot.scan_timestamp or now
        updated_at = now if options.update_existing else None

        def _document(category: str, records: Iterable[ContractRecord]) -> ExportDocument:
            return ExportDocument(
                category=category,
                project_kind=snapshot.project_kind,
                root_path=snapshot.root_path,
                generated_at=generated_at,
                contracts=select_contracts(records, options, root),
                deduplicate=options.deduplicate,
                updated_at=updated_at,
            )

        if not options.separate_by_category:
            stem = f"signatures_{format_timestamp(now)}"
            return [(stem, _document(CONTRACTS, snapshot.retained_contracts()))]

        views: List[Tuple[str, ExportDocument]] = []
        for category in EXPORT_CATEGORIES:
            records = snapshot.contracts_by_category.get(category, [])
            if not records:
                continue
            views.append((f"signatures-{category}", _document(category, records)))
        return views


__all__ = [
    "EXPORT_CATEGORIES",
    "ExportOptions",
    "ExportReport",
    "SignatureExporter",
    "format_timestamp",
    "select_contracts",
    "should_include_function",
]
