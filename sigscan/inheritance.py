"""Import and inheritance heuristics used to prune library noise."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, List, Mapping, Set

from .extractor import contract_name_from_path, strip_comments
from .models import ContractRecord

_IMPORT_RE = re.compile(r"\bimport\b[^;]*?[\"']([^\"']+)[\"']")
_LIB_SEGMENTS = {"lib", "libs"}


def import_paths(source: str) -> List[str]:
    """Return quoted import targets in declaration order."""
    return _IMPORT_RE.findall(strip_comments(source))


def collect_inherited_names(sources: Iterable[str]) -> Set[str]:
    """Base names of files imported from a `lib` directory."""
    names: Set[str] = set()
    for source in sources:
        for target in import_paths(source):
            parts = PurePosixPath(target.replace("\\", "/")).parts
            if _LIB_SEGMENTS.intersection(parts[:-1]):
                names.add(contract_name_from_path(target))
    return names


def is_referenced(name: str, sources: Iterable[str]) -> bool:
    """True when `name` appears on an import line or in an `is ...` list.

    `sources` are expected to be comment-free already.
    """
    escaped = re.escape(name)
    import_re = re.compile(rf"\bimport\b[^;]*\b{escaped}\b")
    inherits_re = re.compile(rf"\bis\s+[^{{;]*\b{escaped}\b")
    for source in sources:
        if import_re.search(source) or inherits_re.search(source):
            return True
    return False


def prune_libraries(
    libraries: Iterable[ContractRecord],
    inherited_names: Set[str],
    contract_sources: Mapping[str, str],
) -> List[ContractRecord]:
    """Keep only library records that the project's own contracts pull in."""
    sources = [strip_comments(source) for source in contract_sources.values()]
    retained: List[ContractRecord] = []
    for record in libraries:
        if record.name in inherited_names or is_referenced(record.name, sources):
            retained.append(record)
    return retained


__all__ = ["collect_inherited_names", "import_paths", "is_referenced", "prune_libraries"]
