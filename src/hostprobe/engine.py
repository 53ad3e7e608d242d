"""Engine facade: one call per telemetry query, each returning an Envelope."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from hostprobe.collectors import (
    CpuCollector,
    DiskCollector,
    HostInfoCollector,
    MemoryCollector,
    NetworkCollector,
    ProcessCollector,
)
from hostprobe.config import APP_NAME, SAMPLE_WINDOW_SECONDS
from hostprobe.envelope import Envelope, fail, ok
from hostprobe.errors import CollectionError
from hostprobe.query import ProcessQuery, ProcessQueryEngine
from hostprobe.report import ReportAggregator
from hostprobe.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


class TelemetryEngine:
    """
    Entry points for a transport layer.

    Holds no per-request state. With a shared sampler, CPU/network/process
    deltas come from its latest readings; without one every call samples on
    its own.
    """

    def __init__(
        self,
        sampler: TelemetrySampler | None = None,
        window: float = SAMPLE_WINDOW_SECONDS,
        query_engine: ProcessQueryEngine | None = None,
    ) -> None:
        self.sampler = sampler
        self._window = window
        self._query_engine = query_engine or ProcessQueryEngine()

    def health(self) -> Envelope[str]:
        """Liveness check; always succeeds."""
        return ok("API is running", f"{APP_NAME} is running")

    def system(self) -> Envelope[Any]:
        """Host identity and uptime."""
        return self._run("system info", HostInfoCollector().collect)

    def cpu(self) -> Envelope[Any]:
        """Per-core CPU usage and identity."""
        return self._run("cpu info", CpuCollector(self.sampler, self._window).collect)

    def memory(self) -> Envelope[Any]:
        """RAM and swap counters."""
        return self._run("memory info", MemoryCollector().collect)

    def disks(self) -> Envelope[Any]:
        """Mounted volumes and their sizes."""
        return self._run("disk info", DiskCollector().collect)

    def networks(self) -> Envelope[Any]:
        """Per-interface traffic deltas and totals."""
        return self._run("network info", NetworkCollector(self.sampler, self._window).collect)

    def processes(self) -> Envelope[Any]:
        """All processes in enumeration order."""
        return self._run("process list", ProcessCollector(self.sampler, self._window).collect)

    def search_processes(self, query: ProcessQuery | None = None) -> Envelope[Any]:
        """Processes matching a name filter, truncated to the query limit."""
        query = query or ProcessQuery()
        try:
            snapshot = ProcessCollector(self.sampler, self._window).collect()
        except CollectionError as exc:
            logger.warning("Process search failed: %s", exc)
            return fail(f"process search failed: {exc}")
        result = self._query_engine.run(snapshot, query)
        return ok(result.message, list(result.processes))

    def full_report(self) -> Envelope[Any]:
        """Every collector in one report, capped at 20 processes."""
        aggregator = ReportAggregator(self.sampler, self._window)
        return self._run("full system report", aggregator.collect_full, verb="generated")

    @staticmethod
    def _run(what: str, collect: Callable[[], Any], verb: str = "retrieved") -> Envelope[Any]:
        """Wrap a collector call, turning CollectionError into a failed envelope."""
        try:
            data = collect()
        except CollectionError as exc:
            logger.warning("Collecting %s failed: %s", what, exc)
            return fail(f"{what} failed: {exc}")
        return ok(f"{what} {verb}", data)
