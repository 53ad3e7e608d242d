"""HTTP transport: maps /api routes onto TelemetryEngine calls."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from hostprobe.config import APP_NAME, SAMPLE_INTERVAL_SECONDS
from hostprobe.engine import TelemetryEngine
from hostprobe.envelope import fail
from hostprobe.query import ProcessQuery
from hostprobe.sampler import TelemetrySampler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class ProcessSearchBody(BaseModel):
    """Body of POST /api/processes/search."""

    name: str | None = None
    limit: int | None = Field(default=None, ge=0)


def _engine(request: Request) -> TelemetryEngine:
    """Engine stored on the app at startup."""
    return request.app.state.engine


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    """Liveness check."""
    return _engine(request).health().to_dict()


@router.get("/system")
def system(request: Request) -> dict[str, Any]:
    """Host identity and uptime."""
    return _engine(request).system().to_dict()


@router.get("/cpu")
def cpu(request: Request) -> dict[str, Any]:
    """Per-core CPU usage."""
    return _engine(request).cpu().to_dict()


@router.get("/memory")
def memory(request: Request) -> dict[str, Any]:
    """RAM and swap counters."""
    return _engine(request).memory().to_dict()


@router.get("/disks")
def disks(request: Request) -> dict[str, Any]:
    """Mounted volumes."""
    return _engine(request).disks().to_dict()


@router.get("/networks")
def networks(request: Request) -> dict[str, Any]:
    """Per-interface traffic."""
    return _engine(request).networks().to_dict()


@router.get("/processes")
def processes(request: Request) -> dict[str, Any]:
    """All processes."""
    return _engine(request).processes().to_dict()


@router.post("/processes/search")
def search_processes(request: Request, body: ProcessSearchBody) -> dict[str, Any]:
    """Processes filtered by name, up to the requested limit."""
    query = ProcessQuery(name=body.name, limit=body.limit)
    return _engine(request).search_processes(query).to_dict()


@router.get("/full-report")
def full_report(request: Request) -> dict[str, Any]:
    """Everything at once, capped at 20 processes."""
    return _engine(request).full_report().to_dict()


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Render any unhandled error as a failed envelope."""
    logger.error("Unhandled error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content=fail(f"internal error: {exc}").to_dict())


def create_app(
    engine: TelemetryEngine | None = None,
    sample_interval: float = SAMPLE_INTERVAL_SECONDS,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Engine to serve. By default one backed by a shared
            TelemetrySampler that runs while the app is up.
        sample_interval: Refresh interval of the default sampler (seconds).
    """
    if engine is None:
        engine = TelemetryEngine(TelemetrySampler(sample_interval))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sampler = engine.sampler
        if sampler is not None:
            sampler.start()
        logger.info("%s started", APP_NAME)
        try:
            yield
        finally:
            if sampler is not None:
                sampler.stop()
            logger.info("%s stopped", APP_NAME)

    app = FastAPI(title=APP_NAME, lifespan=lifespan)
    app.state.engine = engine
    app.include_router(router)
    app.add_exception_handler(Exception, _unexpected_error)
    return app
