"""Project discovery, categorization and aggregation of contract records."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .extractor import SOURCE_SUFFIX, SignatureExtractor, SourceReadError
from .inheritance import collect_inherited_names, prune_libraries
from .logging import get_logger
from .models import (
    CATEGORIES,
    CONTRACTS,
    FOUNDRY,
    HARDHAT,
    LIBS,
    SCRIPTS,
    TESTS,
    UNKNOWN,
    ContractRecord,
    ProjectSnapshot,
    ScanDiagnostic,
)

_EXCLUDED_DIRS = {
    ".git",
    "node_modules",
    "out",
    "cache",
    "artifacts",
    "broadcast",
    "coverage",
    "typechain",
    "typechain-types",
    ".sigscan",
}

# (marker files, source dirs, script dirs)
_PROJECT_LAYOUTS: Tuple[Tuple[str, Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]], ...] = (
    (FOUNDRY, ("foundry.toml",), ("src", "lib", "test"), ("script",)),
    (HARDHAT, ("hardhat.config.js", "hardhat.config.ts"), ("contracts", "test"), ("scripts", "deploy")),
)
_FALLBACK_LAYOUT: Tuple[Tuple[str, ...], Tuple[str, ...]] = (
    ("src", "contracts", "lib", "test"),
    ("script", "scripts"),
)

_CATEGORY_RULES: Tuple[Tuple[frozenset[str], str, str], ...] = (
    (frozenset({"test", "tests"}), ".t.sol", TESTS),
    (frozenset({"script", "scripts", "deploy"}), ".s.sol", SCRIPTS),
    (frozenset({"lib", "libs"}), "", LIBS),
)


@dataclass
class ExcludeRule:
    """A path pattern from `exclude_paths` in .sigscan.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_exclude_rules(patterns: Sequence[str]) -> List[ExcludeRule]:
    rules: List[ExcludeRule] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        directory_only = pattern.endswith("/")
        if directory_only:
            pattern = pattern[:-1]
        anchored = pattern.startswith("/")
        if anchored:
            pattern = pattern[1:]
        rules.append(
            ExcludeRule(
                pattern=pattern,
                directory_only=directory_only,
                anchored=anchored,
                has_slash="/" in pattern,
            )
        )
    return rules


def detect_project_kind(root: Path) -> Tuple[str, List[str], List[str]]:
    """Classify the project by build-tool marker and return its directory lists."""
    for kind, markers, source_dirs, script_dirs in _PROJECT_LAYOUTS:
        if any((root / marker).exists() for marker in markers):
            return kind, list(source_dirs), list(script_dirs)
    source_dirs, script_dirs = _FALLBACK_LAYOUT
    return UNKNOWN, list(source_dirs), list(script_dirs)


def detect_category(relative_path: str) -> str:
    """Categorize a root-relative path; the first matching rule wins."""
    parts = relative_path.replace("\\", "/").split("/")
    directories = {part.lower() for part in parts[:-1]}
    filename = parts[-1].lower()
    for segments, suffix, category in _CATEGORY_RULES:
        if directories & segments:
            return category
        if suffix and filename.endswith(suffix):
            return category
    return CONTRACTS


class ProjectScanner:
    """Walks a Solidity project and aggregates extracted signatures."""

    def __init__(
        self,
        extractor: SignatureExtractor | None = None,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.extractor = extractor or SignatureExtractor()
        self.logger = get_logger("scanner")
        self._rules = build_exclude_rules(exclude_paths)

    def scan(self, root: str | Path) -> ProjectSnapshot:
        """Return a fresh snapshot of every source file under the project's directories."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        kind, source_dirs, script_dirs = detect_project_kind(root_path)
        self.logger.info("Scanning %s project at %s", kind, root_path)
        snapshot = ProjectSnapshot(
            project_kind=kind,
            root_path=str(root_path),
            source_dirs=source_dirs,
            script_dirs=script_dirs,
        )

        for path, forced in self._discover(snapshot):
            record = self._extract(snapshot, path, forced)
            if record is not None:
                snapshot.contracts_by_path[record.file_path] = record
                snapshot.contracts_by_category[record.category].append(record)

        self._link_libraries(snapshot)
        self._rebuild_index(snapshot)
        snapshot.scan_timestamp = datetime.now(UTC)

        self.logger.info(
            "Found %d contracts (%d functions, %d events, %d errors)",
            snapshot.total_contracts,
            snapshot.total_functions,
            snapshot.total_events,
            snapshot.total_errors,
        )
        if snapshot.diagnostics:
            self.logger.warning("%d files could not be read", len(snapshot.diagnostics))
        return snapshot

    def apply_incremental_update(
        self, snapshot: ProjectSnapshot, since: datetime
    ) -> Tuple[List[ContractRecord], List[str]]:
        """Re-extract files modified after `since`, pick up new files, drop deleted ones.

        Library pruning is not re-run; it is only recomputed by a full scan.
        """
        threshold = since.timestamp()
        changed: List[ContractRecord] = []
        removed: List[str] = []

        for path_str, record in list(snapshot.contracts_by_path.items()):
            path = Path(path_str)
            try:
                mtime = path.stat().st_mtime
            except FileNotFoundError:
                removed.append(path_str)
                continue
            except OSError as exc:
                self._diagnose(snapshot, path_str, exc.strerror or str(exc))
                continue
            if mtime <= threshold:
                continue
            updated = self._extract(snapshot, path, self._forced_category(snapshot, path))
            if updated is None:
                # An unreadable file keeps its previous record; an emptied one is dropped.
                if not self._unreadable(snapshot, path_str):
                    removed.append(path_str)
                continue
            self._replace(snapshot, record, updated)
            changed.append(updated)

        discovered = set()
        for path, forced in self._discover(snapshot):
            discovered.add(str(path))
            if str(path) in snapshot.contracts_by_path:
                continue
            record = self._extract(snapshot, path, forced)
            if record is not None:
                self._add(snapshot, record)
                changed.append(record)

        for path_str in removed:
            self._drop(snapshot, path_str)
        snapshot.diagnostics = [
            item
            for item in snapshot.diagnostics
            if item.path in discovered or item.path in snapshot.contracts_by_path
        ]

        self._rebuild_index(snapshot)
        snapshot.scan_timestamp = datetime.now(UTC)
        self.logger.debug(
            "Incremental update: %d changed, %d removed", len(changed), len(removed)
        )
        return changed, removed

    def refresh_file(self, snapshot: ProjectSnapshot, path: str | Path) -> Optional[ContractRecord]:
        """Re-extract one file after an added/changed notification."""
        file_path = Path(path).expanduser().resolve()
        if not self._is_tracked(snapshot, file_path):
            self.logger.debug("Ignoring untracked path %s", file_path)
            return None

        existing = snapshot.contracts_by_path.get(str(file_path))
        record = self._extract(snapshot, file_path, self._forced_category(snapshot, file_path))
        if record is None:
            if existing is not None and not self._unreadable(snapshot, str(file_path)):
                self._drop(snapshot, str(file_path))
                self._rebuild_index(snapshot)
            return None

        if existing is not None:
            self._replace(snapshot, existing, record)
        else:
            self._add(snapshot, record)
        self._rebuild_index(snapshot)
        return record

    def remove_file(self, snapshot: ProjectSnapshot, path: str | Path) -> bool:
        """Forget a file after a removed notification."""
        key = str(Path(path).expanduser().resolve())
        self._clear_diagnostics(snapshot, key)
        if key not in snapshot.contracts_by_path:
            return False
        self._drop(snapshot, key)
        self._rebuild_index(snapshot)
        return True

    def iter_source_files(self, snapshot: ProjectSnapshot) -> Iterator[Path]:
        """Every source file currently present under the snapshot's directories."""
        for path, _ in self._discover(snapshot):
            yield path

    # ------------------------------------------------------------------
    # Internal helpers

    def _discover(self, snapshot: ProjectSnapshot) -> Iterator[Tuple[Path, Optional[str]]]:
        root = Path(snapshot.root_path)
        found: Dict[Path, Optional[str]] = {}
        for directory in snapshot.source_dirs:
            for path in self._iter_sources(root, root / directory):
                found.setdefault(path, None)
        for directory in snapshot.script_dirs:
            for path in self._iter_sources(root, root / directory):
                found[path] = SCRIPTS
        yield from found.items()

    def _iter_sources(self, root: Path, directory: Path) -> Iterator[Path]:
        if not directory.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(directory):
            current = Path(dirpath)
            rel_dir = current.relative_to(root).as_posix()

            kept = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS or self._excluded(f"{rel_dir}/{name}", True):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for filename in sorted(filenames):
                if not filename.endswith(SOURCE_SUFFIX):
                    continue
                if self._excluded(f"{rel_dir}/{filename}", False):
                    continue
                yield current / filename

    def _excluded(self, rel_path: str, is_dir: bool) -> bool:
        return any(rule.matches(rel_path, is_dir) for rule in self._rules)

    def _is_tracked(self, snapshot: ProjectSnapshot, path: Path) -> bool:
        if not path.name.endswith(SOURCE_SUFFIX):
            return False
        root = Path(snapshot.root_path)
        for directory in (*snapshot.source_dirs, *snapshot.script_dirs):
            if path.is_relative_to(root / directory):
                return not self._excluded_below(directory, path.relative_to(root).as_posix())
        return False

    def _excluded_below(self, directory: str, rel_path: str) -> bool:
        """Apply the pruning of `_iter_sources` to one file under `directory`."""
        parts = rel_path.split("/")
        for depth in range(len(Path(directory).parts) + 1, len(parts)):
            name = parts[depth - 1]
            if name in _EXCLUDED_DIRS or self._excluded("/".join(parts[:depth]), True):
                return True
        return self._excluded(rel_path, False)

    @staticmethod
    def _forced_category(snapshot: ProjectSnapshot, path: Path) -> Optional[str]:
        root = Path(snapshot.root_path)
        for directory in snapshot.script_dirs:
            if path.is_relative_to(root / directory):
                return SCRIPTS
        return None

    def _extract(
        self, snapshot: ProjectSnapshot, path: Path, forced: Optional[str]
    ) -> Optional[ContractRecord]:
        rel_path = path.relative_to(Path(snapshot.root_path)).as_posix()
        category = forced or detect_category(rel_path)
        previous = self._clear_diagnostics(snapshot, str(path))
        try:
            return self.extractor.extract_file(path, category=category)
        except SourceReadError as exc:
            self._diagnose(snapshot, str(path), exc.reason, previous)
            return None

    def _diagnose(
        self,
        snapshot: ProjectSnapshot,
        path: str,
        message: str,
        previous: Sequence[ScanDiagnostic] = (),
    ) -> None:
        diagnostic = ScanDiagnostic(path=path, message=message)
        if diagnostic in snapshot.diagnostics:
            return
        if diagnostic in previous:
            self.logger.debug("Still skipping %s: %s", path, message)
        else:
            self.logger.warning("Skipping %s: %s", path, message)
        snapshot.diagnostics.append(diagnostic)

    @staticmethod
    def _clear_diagnostics(snapshot: ProjectSnapshot, path: str) -> List[ScanDiagnostic]:
        """Forget earlier read failures for `path`; returns what was removed."""
        cleared = [item for item in snapshot.diagnostics if item.path == path]
        if cleared:
            snapshot.diagnostics = [item for item in snapshot.diagnostics if item.path != path]
        return cleared

    @staticmethod
    def _unreadable(snapshot: ProjectSnapshot, path: str) -> bool:
        return any(item.path == path for item in snapshot.diagnostics)

    def _link_libraries(self, snapshot: ProjectSnapshot) -> None:
        contract_sources: Dict[str, str] = {}
        for record in snapshot.contracts_by_category[CONTRACTS]:
            try:
                contract_sources[record.file_path] = Path(record.file_path).read_text(
                    encoding="utf-8"
                )
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.debug("Cannot re-read %s for import analysis: %s", record.file_path, exc)

        snapshot.inherited_names = collect_inherited_names(contract_sources.values())
        libraries = snapshot.contracts_by_category[LIBS]
        retained = prune_libraries(libraries, snapshot.inherited_names, contract_sources)
        self.logger.debug("Retained %d of %d library contracts", len(retained), len(libraries))
        snapshot.contracts_by_category[LIBS] = retained

    @staticmethod
    def _rebuild_index(snapshot: ProjectSnapshot) -> None:
        index = {}
        for record in snapshot.retained_contracts():
            for entry in record.entries():
                index[entry.signature] = entry
        snapshot.unique_signatures = index

    @staticmethod
    def _add(snapshot: ProjectSnapshot, record: ContractRecord) -> None:
        snapshot.contracts_by_path[record.file_path] = record
        snapshot.contracts_by_category[record.category].append(record)

    @staticmethod
    def _replace(snapshot: ProjectSnapshot, old: ContractRecord, new: ContractRecord) -> None:
        snapshot.contracts_by_path[new.file_path] = new
        listing = snapshot.contracts_by_category[old.category]
        for index, candidate in enumerate(listing):
            if candidate is old:
                if new.category == old.category:
                    listing[index] = new
                else:
                    del listing[index]
                    snapshot.contracts_by_category[new.category].append(new)
                return

    @staticmethod
    def _drop(snapshot: ProjectSnapshot, path: str) -> None:
        record = snapshot.contracts_by_path.pop(path, None)
        if record is None:
            return
        for category in CATEGORIES:
            listing = snapshot.contracts_by_category[category]
            snapshot.contracts_by_category[category] = [
                candidate for candidate in listing if candidate is not record
            ]


__all__ = [
    "ExcludeRule",
    "ProjectScanner",
    "build_exclude_rules",
    "detect_category",
    "detect_project_kind",
]
