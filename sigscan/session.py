"""Session object tying scanner, exporter and the live snapshot together."""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .bookkeeping import ensure_gitignored
from .config import SigScanConfig, load_config
from .exporter import ExportOptions, ExportReport, SignatureExporter
from .logging import get_logger
from .models import ContractRecord, ProjectSnapshot
from .scanner import ProjectScanner
from .watcher import ChangeEvent, ChangeKind


class SigScanSession:
    """Owns the one live snapshot for a project.

    The scanner is the only writer and the exporter the only reader; both run
    under the same lock so an export never observes a half-applied update.
    """

    def __init__(
        self,
        root: str | Path,
        config: SigScanConfig | None = None,
        scanner: ProjectScanner | None = None,
        exporter: SignatureExporter | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.config = config or load_config(self.root)
        self.scanner = scanner or ProjectScanner(exclude_paths=self.config.exclude_paths)
        self.exporter = exporter or SignatureExporter()
        self.logger = get_logger("session")
        self._lock = threading.RLock()
        self._snapshot: Optional[ProjectSnapshot] = None

    @property
    def snapshot(self) -> Optional[ProjectSnapshot]:
        return self._snapshot

    def require_snapshot(self) -> ProjectSnapshot:
        if self._snapshot is None:
            raise RuntimeError("No snapshot available; run a scan first")
        return self._snapshot

    def scan(self) -> ProjectSnapshot:
        """Run a full scan; the previous snapshot is discarded, not merged."""
        snapshot = self.scanner.scan(self.root)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def refresh(
        self, since: datetime | None = None
    ) -> Tuple[List[ContractRecord], List[str]]:
        """Apply an incremental update relative to `since` (default: last scan time)."""
        with self._lock:
            snapshot = self.require_snapshot()
            threshold = since or snapshot.scan_timestamp
            if threshold is None:
                raise RuntimeError("Snapshot has no scan timestamp")
            return self.scanner.apply_incremental_update(snapshot, threshold)

    def handle(self, event: ChangeEvent) -> bool:
        """Apply one change notification; True when the snapshot changed."""
        if event.kind is ChangeKind.ERROR:
            self.logger.warning("Watcher error: %s", event.reason)
            return False
        if event.path is None:
            return False

        with self._lock:
            snapshot = self.require_snapshot()
            if event.kind is ChangeKind.REMOVED:
                changed = self.scanner.remove_file(snapshot, event.path)
                if changed:
                    self.logger.info("Contract removed: %s", event.path)
                return changed

            key = str(Path(event.path).expanduser().resolve())
            existed = key in snapshot.contracts_by_path
            record = self.scanner.refresh_file(snapshot, event.path)
            if record is not None:
                verb = "updated" if event.kind is ChangeKind.CHANGED else "added"
                self.logger.info("Contract %s: %s (%s)", verb, record.name, event.path)
                return True
            # A file whose declarations all disappeared is dropped from the snapshot.
            return existed and key not in snapshot.contracts_by_path

    def process(self, event: ChangeEvent, options: ExportOptions | None = None) -> None:
        """Handle a notification and re-export when it changed anything."""
        if self.handle(event):
            self.export(options)

    def export_options(self, **overrides: object) -> ExportOptions:
        """Options from .sigscan.yml with any non-None overrides applied."""
        options = ExportOptions.from_config(self.config)
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "output_dir" in changes:
            output_dir = Path(str(changes["output_dir"])).expanduser()
            changes["output_dir"] = output_dir if output_dir.is_absolute() else self.root / output_dir
        return dataclasses.replace(options, **changes)

    def export(self, options: ExportOptions | None = None) -> ExportReport:
        options = options or self.export_options()
        with self._lock:
            report = self.exporter.export(self.require_snapshot(), options)
        if self.config.gitignore and report.written:
            ensure_gitignored(self.root, Path(options.output_dir))
        return report


__all__ = ["SigScanSession"]
