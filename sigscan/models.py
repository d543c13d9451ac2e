"""Core data models shared across sigscan components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

FUNCTION = "function"
EVENT = "event"
ERROR = "error"

VISIBILITIES: Tuple[str, ...] = ("public", "external", "internal", "private")
MUTABILITIES: Tuple[str, ...] = ("pure", "view", "nonpayable", "payable")

CONTRACTS = "contracts"
LIBS = "libs"
TESTS = "tests"
SCRIPTS = "scripts"
CATEGORIES: Tuple[str, ...] = (CONTRACTS, LIBS, TESTS, SCRIPTS)

FOUNDRY = "foundry"
HARDHAT = "hardhat"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class Parameter:
    """A single declared parameter; `indexed` is only set for event inputs."""

    name: str
    type: str
    indexed: Optional[bool] = None


@dataclass(frozen=True)
class SignatureEntry:
    """A function, event or custom error declaration with its canonical identity."""

    kind: str
    name: str
    signature: str
    selector: str
    inputs: Tuple[Parameter, ...]
    contract_name: str
    file_path: str
    outputs: Tuple[Parameter, ...] = ()
    visibility: Optional[str] = None
    state_mutability: Optional[str] = None


@dataclass
class ContractRecord:
    """Everything extracted from one source file."""

    name: str
    file_path: str
    category: str
    functions: List[SignatureEntry] = field(default_factory=list)
    events: List[SignatureEntry] = field(default_factory=list)
    errors: List[SignatureEntry] = field(default_factory=list)
    last_modified: Optional[datetime] = None

    def entries(self) -> List[SignatureEntry]:
        return [*self.functions, *self.events, *self.errors]


@dataclass(frozen=True)
class ScanDiagnostic:
    """A per-file problem surfaced to the caller instead of aborting the scan."""

    path: str
    message: str


@dataclass
class ProjectSnapshot:
    """Aggregated scan result for one project at one point in time."""

    project_kind: str
    root_path: str
    source_dirs: List[str]
    script_dirs: List[str]
    contracts_by_path: Dict[str, ContractRecord] = field(default_factory=dict)
    contracts_by_category: Dict[str, List[ContractRecord]] = field(
        default_factory=lambda: {category: [] for category in CATEGORIES}
    )
    inherited_names: Set[str] = field(default_factory=set)
    unique_signatures: Dict[str, SignatureEntry] = field(default_factory=dict)
    scan_timestamp: Optional[datetime] = None
    diagnostics: List[ScanDiagnostic] = field(default_factory=list)

    def retained_contracts(self) -> List[ContractRecord]:
        """Contracts listed in a category, in category order."""
        records: List[ContractRecord] = []
        for category in CATEGORIES:
            records.extend(self.contracts_by_category.get(category, []))
        return records

    @property
    def total_contracts(self) -> int:
        return len(self.contracts_by_path)

    @property
    def total_functions(self) -> int:
        return sum(len(record.functions) for record in self.contracts_by_path.values())

    @property
    def total_events(self) -> int:
        return sum(len(record.events) for record in self.contracts_by_path.values())

    @property
    def total_errors(self) -> int:
        return sum(len(record.errors) for record in self.contracts_by_path.values())
