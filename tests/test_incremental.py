"""Tests for incremental snapshot updates in sigscan.scanner."""

from __future__ import annotations

from sigscan.models import CONTRACTS, SCRIPTS, TESTS
from sigscan.scanner import ProjectScanner
from sigscan.session import SigScanSession
from sigscan.watcher import ChangeEvent
from tests._fixtures import solidity
from tests._fixtures.project_builder import ProjectBuilder


def _key(builder: ProjectBuilder, relative: str) -> str:
    return str(builder.path(relative))


def test_modified_file_is_replaced_in_place(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()
    before = dict(snapshot.contracts_by_path)
    previous_timestamp = snapshot.scan_timestamp

    updated = solidity.TOKEN.replace(
        "function _secret()",
        "function burn(uint256 amount) external {}\n    function _secret()",
    )
    foundry_project.write({"src/Token.sol": updated})
    foundry_project.touch("src/Token.sol")

    changed, removed = foundry_project.scanner.apply_incremental_update(
        snapshot, previous_timestamp
    )

    token_key = _key(foundry_project, "src/Token.sol")
    assert [record.file_path for record in changed] == [token_key]
    assert removed == []

    token = snapshot.contracts_by_path[token_key]
    assert token is not before[token_key]
    assert "burn" in {entry.name for entry in token.functions}
    assert snapshot.contracts_by_category[CONTRACTS] == [token]
    assert "burn(uint256)" in snapshot.unique_signatures

    for path, record in before.items():
        if path != token_key:
            assert snapshot.contracts_by_path[path] is record
    assert snapshot.scan_timestamp > previous_timestamp


def test_deleted_and_new_files_are_reconciled(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()

    foundry_project.path("test/Token.t.sol").unlink()
    foundry_project.write({"src/Vault.sol": "contract Vault { function sweep() external {} }\n"})

    changed, removed = foundry_project.scanner.apply_incremental_update(
        snapshot, snapshot.scan_timestamp
    )

    test_key = _key(foundry_project, "test/Token.t.sol")
    assert removed == [test_key]
    assert test_key not in snapshot.contracts_by_path
    assert snapshot.contracts_by_category[TESTS] == []
    assert "testTransfer()" not in snapshot.unique_signatures

    assert [record.name for record in changed] == ["Vault"]
    assert [record.name for record in snapshot.contracts_by_category[CONTRACTS]] == [
        "Token",
        "Vault",
    ]
    assert "sweep()" in snapshot.unique_signatures


def test_emptied_file_is_dropped(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()

    foundry_project.write({"script/Deploy.s.sol": "pragma solidity ^0.8.20;\n"})
    foundry_project.touch("script/Deploy.s.sol")

    _, removed = foundry_project.scanner.apply_incremental_update(
        snapshot, snapshot.scan_timestamp
    )

    assert removed == [_key(foundry_project, "script/Deploy.s.sol")]
    assert snapshot.contracts_by_category[SCRIPTS] == []


def test_unreadable_update_keeps_previous_record(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()
    key = _key(foundry_project, "src/Token.sol")
    original = snapshot.contracts_by_path[key]

    foundry_project.path("src/Token.sol").write_bytes(b"contract Token {\xff}")
    foundry_project.touch("src/Token.sol")

    changed, removed = foundry_project.scanner.apply_incremental_update(
        snapshot, snapshot.scan_timestamp
    )

    assert changed == [] and removed == []
    assert snapshot.contracts_by_path[key] is original
    assert [diagnostic.path for diagnostic in snapshot.diagnostics] == [key]


def test_untouched_project_is_a_no_op(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()
    index = dict(snapshot.unique_signatures)

    changed, removed = foundry_project.scanner.apply_incremental_update(
        snapshot, snapshot.scan_timestamp
    )

    assert changed == [] and removed == []
    assert snapshot.unique_signatures == index


def test_refresh_file_adds_and_replaces(foundry_project: ProjectBuilder) -> None:
    scanner = foundry_project.scanner
    snapshot = foundry_project.scan()

    foundry_project.write({"src/Vault.sol": "contract Vault { error Locked(); }\n"})
    added = scanner.refresh_file(snapshot, foundry_project.path("src/Vault.sol"))
    assert added is not None
    assert added.category == CONTRACTS
    assert snapshot.contracts_by_path[added.file_path] is added
    assert "Locked()" in snapshot.unique_signatures

    foundry_project.write({"src/Vault.sol": "contract Vault { error Frozen(uint256 until); }\n"})
    replaced = scanner.refresh_file(snapshot, foundry_project.path("src/Vault.sol"))
    assert replaced is not None
    assert snapshot.contracts_by_category[CONTRACTS].count(replaced) == 1
    assert "Locked()" not in snapshot.unique_signatures
    assert "Frozen(uint256)" in snapshot.unique_signatures


def test_refresh_file_ignores_untracked_paths(foundry_project: ProjectBuilder) -> None:
    snapshot = foundry_project.scan()
    foundry_project.write({"docs/Example.sol": "contract Example { function x() external {} }\n"})

    assert foundry_project.scanner.refresh_file(snapshot, foundry_project.path("docs/Example.sol")) is None
    assert foundry_project.scanner.refresh_file(snapshot, foundry_project.path("foundry.toml")) is None
    assert snapshot.total_contracts == 6


def test_remove_file_forgets_record(foundry_project: ProjectBuilder) -> None:
    scanner = foundry_project.scanner
    snapshot = foundry_project.scan()
    target = foundry_project.path("lib/openzeppelin/contracts/token/ERC20.sol")

    assert scanner.remove_file(snapshot, target) is True
    assert str(target) not in snapshot.contracts_by_path
    assert [record.name for record in snapshot.contracts_by_category["libs"]] == ["Ownable"]
    assert snapshot.unique_signatures["transfer(address,uint256)"].contract_name == "Token"

    assert scanner.remove_file(snapshot, target) is False


def test_refresh_file_honours_directory_excludes(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "foundry.toml": "",
            "src/Main.sol": "contract Main { function go() external {} }\n",
            "src/mocks/MockMain.sol": "contract MockMain { function go() external {} }\n",
            "src/cache/Cached.sol": "contract Cached { function hit() external {} }\n",
        }
    )
    scanner = ProjectScanner(exclude_paths=["src/mocks/"])
    snapshot = scanner.scan(project_builder.root)
    assert list(snapshot.contracts_by_path) == [_key(project_builder, "src/Main.sol")]

    for relative in ("src/mocks/MockMain.sol", "src/cache/Cached.sol"):
        assert scanner.refresh_file(snapshot, project_builder.path(relative)) is None
        assert _key(project_builder, relative) not in snapshot.contracts_by_path

    session = SigScanSession(project_builder.root, scanner=scanner)
    session.scan()
    mock = str(project_builder.path("src/mocks/MockMain.sol"))
    assert session.handle(ChangeEvent.changed(mock)) is False


def test_repeated_updates_do_not_duplicate_diagnostics(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "foundry.toml": "",
            "src/Good.sol": "contract Good { function ok() external {} }\n",
        }
    )
    bad = project_builder.root / "src" / "Bad.sol"
    bad.write_bytes(b"contract Bad {\xff\xfe}")
    snapshot = project_builder.scan()
    assert len(snapshot.diagnostics) == 1

    for _ in range(3):
        project_builder.scanner.apply_incremental_update(snapshot, snapshot.scan_timestamp)
    project_builder.scanner.refresh_file(snapshot, bad)

    assert [item.path for item in snapshot.diagnostics] == [str(bad.resolve())]


def test_diagnostics_clear_once_the_file_is_fixed_or_gone(
    project_builder: ProjectBuilder,
) -> None:
    project_builder.write({"foundry.toml": ""})
    bad = project_builder.root / "src" / "Bad.sol"
    bad.parent.mkdir()
    bad.write_bytes(b"contract Bad {\xff\xfe}")
    other = project_builder.root / "src" / "Other.sol"
    other.write_bytes(b"contract Other {\xff}")
    snapshot = project_builder.scan()
    assert len(snapshot.diagnostics) == 2

    project_builder.write({"src/Bad.sol": "contract Bad { function fixed() external {} }\n"})
    other.unlink()
    changed, _ = project_builder.scanner.apply_incremental_update(
        snapshot, snapshot.scan_timestamp
    )

    assert [record.name for record in changed] == ["Bad"]
    assert snapshot.diagnostics == []
