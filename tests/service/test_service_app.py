"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from sigscan.service import create_app
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_scan_endpoint_summarises_project(
    client: TestClient, foundry_project: ProjectBuilder
) -> None:
    response = client.post("/scan", json={"path": str(foundry_project.path())})

    assert response.status_code == 200
    body = response.json()
    assert body["project_kind"] == "foundry"
    assert body["total_contracts"] == 6
    assert body["total_functions"] == 12
    assert body["categories"] == {"contracts": 1, "libs": 2, "tests": 1, "scripts": 1}
    assert body["skipped"] == []


def test_export_endpoint_writes_requested_formats(
    client: TestClient, foundry_project: ProjectBuilder, tmp_path: Path
) -> None:
    out = tmp_path / "exports"
    response = client.post(
        "/export",
        json={
            "path": str(foundry_project.path()),
            "formats": ["json", "pdf"],
            "output_dir": str(out),
            "separate_by_category": True,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "partial"
    assert set(body["failures"]) == {"pdf"}
    assert str(out / "signatures-contracts.json") in body["written"]
    assert (out / "signatures-libs.json").exists()


def test_missing_project_returns_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/scan", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404
    assert "Project path not found" in response.json()["detail"]


def test_file_path_returns_400(client: TestClient, tmp_path: Path) -> None:
    target = tmp_path / "Token.sol"
    target.write_text("contract Token {}\n", encoding="utf-8")

    response = client.post("/scan", json={"path": str(target)})

    assert response.status_code == 400
