"""FastAPI application entrypoint for sigscan service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError
from ..session import SigScanSession


class ScanRequest(BaseModel):
    path: str


class ScanResponse(BaseModel):
    project_kind: str
    root_path: str
    total_contracts: int
    total_functions: int
    total_events: int
    total_errors: int
    unique_signatures: int
    categories: Dict[str, int]
    skipped: List[str]


class ExportRequest(BaseModel):
    path: str
    formats: Optional[List[str]] = None
    output_dir: Optional[str] = None
    include_internal: Optional[bool] = None
    include_private: Optional[bool] = None
    include_events: Optional[bool] = None
    include_errors: Optional[bool] = None
    separate_by_category: Optional[bool] = None
    deduplicate: Optional[bool] = None
    update_existing: Optional[bool] = None


class ExportResponse(BaseModel):
    status: str
    written: List[str]
    failures: Dict[str, str]


class HealthResponse(BaseModel):
    status: str


SessionFactory = Callable[[str], SigScanSession]


def create_app(session_factory: SessionFactory = SigScanSession) -> FastAPI:
    """Create the FastAPI application exposing scan and export operations."""

    app = FastAPI(title="SigScan Service", version="1.0.0")

    async def get_session_factory() -> SessionFactory:
        return session_factory

    async def _in_executor(func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan", response_model=ScanResponse)
    async def scan_project(
        payload: ScanRequest,
        factory: SessionFactory = Depends(get_session_factory),
    ) -> ScanResponse:
        def _run_scan() -> ScanResponse:
            # A fresh session per request; snapshots are never shared between callers.
            snapshot = factory(payload.path).scan()
            return ScanResponse(
                project_kind=snapshot.project_kind,
                root_path=snapshot.root_path,
                total_contracts=snapshot.total_contracts,
                total_functions=snapshot.total_functions,
                total_events=snapshot.total_events,
                total_errors=snapshot.total_errors,
                unique_signatures=len(snapshot.unique_signatures),
                categories={
                    category: len(records)
                    for category, records in snapshot.contracts_by_category.items()
                },
                skipped=[diagnostic.path for diagnostic in snapshot.diagnostics],
            )

        return await _in_executor(_run_scan)

    @app.post("/export", response_model=ExportResponse)
    async def export_project(
        payload: ExportRequest,
        factory: SessionFactory = Depends(get_session_factory),
    ) -> ExportResponse:
        def _run_export() -> ExportResponse:
            session = factory(payload.path)
            options = session.export_options(
                **payload.model_dump(exclude={"path"}, exclude_none=True)
            )
            session.scan()
            report = session.export(options)
            return ExportResponse(
                status="ok" if report.ok else "partial",
                written=[str(path) for path in report.written],
                failures=report.failures,
            )

        return await _in_executor(_run_export)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(
        _: Any, exc: NotADirectoryError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(
        _: Any, exc: ConfigError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
