"""Background monitor feeding the live dashboard."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Queue

from hostprobe.collectors import CpuCollector, HostInfoCollector, MemoryCollector, ProcessCollector
from hostprobe.config import MONITOR_POLL_SECONDS
from hostprobe.models import CpuCore, HostInfo, MemoryInfo, ProcessEntry
from hostprobe.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MonitorSnapshot:
    """What one dashboard frame shows."""

    host: HostInfo
    cpu: list[CpuCore]
    memory: MemoryInfo
    processes: list[ProcessEntry]


class SystemMonitor:
    """
    Collects dashboard snapshots in a daemon thread.

    Every poll refreshes the sampler once, so CPU and process usage cover the
    time since the previous poll, then pushes a MonitorSnapshot to the queue.
    """

    def __init__(
        self,
        update_queue: Queue[MonitorSnapshot],
        poll_rate: float = MONITOR_POLL_SECONDS,
        sampler: TelemetrySampler | None = None,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue to push updates to.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
            sampler: Sampler to refresh on each poll. A private one by default.
        """
        self._queue = update_queue
        self._poll_rate = poll_rate
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._sampler = sampler or TelemetrySampler(poll_rate, network=False)
        # Baseline reading so the first snapshot has real deltas
        self._sampler.refresh()

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_snapshot())
            except Exception:
                # Keep the loop alive; the next poll may succeed
                logger.exception("Dashboard snapshot failed")

            self._stop_event.wait(timeout=self._poll_rate)

    def collect_snapshot(self) -> MonitorSnapshot:
        """Refresh the sampler and collect one dashboard snapshot."""
        samples = self._sampler.refresh()
        return MonitorSnapshot(
            host=HostInfoCollector().collect(),
            cpu=CpuCollector(samples=samples).collect(),
            memory=MemoryCollector().collect(),
            processes=ProcessCollector(samples=samples).collect(),
        )
