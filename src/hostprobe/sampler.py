"""Long-lived sampler for delta metrics (CPU usage, network traffic, process CPU).

CPU usage and per-interval traffic only mean something as the difference of two
readings of the same counters. TelemetrySampler keeps the previous reading,
takes a new one on every tick and publishes the differences as an immutable
SampleSet. All readings happen under one lock, so there is a single writer;
readers only ever see a finished SampleSet.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import psutil

from hostprobe.config import SAMPLE_INTERVAL_SECONDS, SAMPLE_WINDOW_SECONDS

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 0.05


@dataclass(slots=True, frozen=True)
class TrafficDelta:
    """Traffic on one interface between two readings."""

    received_bytes: int = 0
    transmitted_bytes: int = 0
    packets_received: int = 0
    packets_transmitted: int = 0


ZERO_TRAFFIC = TrafficDelta()


@dataclass(slots=True, frozen=True)
class SampleSet:
    """Differences between the two most recent readings."""

    taken_at: float  # time.monotonic() of the later reading
    interval: float  # seconds between the two readings, 0.0 if no baseline yet
    cpu_percent: tuple[float, ...] = ()
    network: Mapping[str, TrafficDelta] = field(default_factory=dict)
    process_cpu: Mapping[int, float] = field(default_factory=dict)

    def cpu_usage(self, index: int) -> float:
        if 0 <= index < len(self.cpu_percent):
            return self.cpu_percent[index]
        return 0.0

    def traffic(self, interface: str) -> TrafficDelta:
        return self.network.get(interface, ZERO_TRAFFIC)

    def process_cpu_percent(self, pid: int) -> float:
        return self.process_cpu.get(pid, 0.0)


def _total_time(times: Sequence[float]) -> float:
    total = float(sum(times))
    # guest time is already accounted for in user/nice on Linux
    total -= getattr(times, "guest", 0.0) + getattr(times, "guest_nice", 0.0)
    return total


def _idle_time(times: Any) -> float:
    return times.idle + getattr(times, "iowait", 0.0)


def busy_percent(before: Any, after: Any) -> float:
    """Busy share of one core between two cpu_times readings, clamped to 0-100."""
    total = _total_time(after) - _total_time(before)
    if total <= 0:
        return 0.0
    busy = total - (_idle_time(after) - _idle_time(before))
    return min(100.0, max(0.0, busy / total * 100.0))


def cpu_percentages(before: Sequence[Any], after: Sequence[Any]) -> list[float]:
    """Per-core busy percentages from two psutil.cpu_times(percpu=True) readings."""
    if len(before) != len(after):
        return [0.0] * len(after)
    return [busy_percent(b, a) for b, a in zip(before, after)]


def traffic_deltas(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, TrafficDelta]:
    """
    Per-interface traffic between two psutil.net_io_counters(pernic=True) readings.

    Interfaces without an earlier reading report zero traffic. Counters that went
    backwards (interface reset) are clamped to zero.
    """
    deltas: dict[str, TrafficDelta] = {}
    for name, current in after.items():
        previous = before.get(name)
        if previous is None:
            deltas[name] = ZERO_TRAFFIC
            continue
        deltas[name] = TrafficDelta(
            received_bytes=max(0, current.bytes_recv - previous.bytes_recv),
            transmitted_bytes=max(0, current.bytes_sent - previous.bytes_sent),
            packets_received=max(0, current.packets_recv - previous.packets_recv),
            packets_transmitted=max(0, current.packets_sent - previous.packets_sent),
        )
    return deltas


class TelemetrySampler:
    """
    Sampler that keeps the previous reading of every delta counter.

    Can run in a daemon thread that refreshes every ``interval`` seconds, or be
    refreshed on demand through ``latest()``. Readers get at most
    ``2 * interval`` old data by default.
    """

    def __init__(
        self,
        interval: float = SAMPLE_INTERVAL_SECONDS,
        *,
        window: float = SAMPLE_WINDOW_SECONDS,
        cpu: bool = True,
        network: bool = True,
        processes: bool = True,
    ) -> None:
        """
        Initialize the TelemetrySampler.

        Args:
            interval: Seconds between background refreshes.
            window: Seconds between the two readings of an on-demand refresh.
            cpu: Track per-core CPU usage.
            network: Track per-interface traffic.
            processes: Track per-process CPU usage.
        """
        self._interval = max(MIN_INTERVAL_SECONDS, interval)
        self._window = max(0.0, window)
        self._track_cpu = cpu
        self._track_network = network
        self._track_processes = processes
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._cpu_times: list[Any] | None = None
        self._net_counters: dict[str, Any] = {}
        self._procs: dict[int, psutil.Process] = {}
        self._last_read_at: float | None = None
        self._latest: SampleSet | None = None

    @classmethod
    def one_shot(
        cls,
        window: float = SAMPLE_WINDOW_SECONDS,
        *,
        cpu: bool = False,
        network: bool = False,
        processes: bool = False,
    ) -> SampleSet:
        """Take two readings ``window`` seconds apart on a private sampler."""
        sampler = cls(window, window=window, cpu=cpu, network=network, processes=processes)
        return sampler.latest()

    @property
    def interval(self) -> float:
        """Get the refresh interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the refresh interval."""
        self._interval = max(MIN_INTERVAL_SECONDS, value)

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def tracked_processes(self) -> int:
        """Number of process handles currently cached."""
        with self._lock:
            return len(self._procs)

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="TelemetrySampler",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def refresh(self) -> SampleSet:
        """Take one reading now and publish the differences to the previous one."""
        with self._lock:
            return self._tick()

    def latest(self, max_age: float | None = None) -> SampleSet:
        """
        Return the most recent SampleSet, refreshing it first if needed.

        A refresh happens when there is no sample with a baseline yet or the last
        one is older than ``max_age`` (default ``2 * interval``). It takes two
        readings ``window`` seconds apart.
        """
        limit = 2 * self._interval if max_age is None else max_age
        with self._lock:
            latest = self._latest
            if (
                latest is not None
                and latest.interval > 0
                and time.monotonic() - latest.taken_at <= limit
            ):
                return latest
            self._tick()
            time.sleep(self._window)
            return self._tick()

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self.refresh()
            except Exception:
                logger.exception("Sampler refresh failed")

            self._stop_event.wait(timeout=self._interval)

    def _tick(self) -> SampleSet:
        now = time.monotonic()
        elapsed = 0.0 if self._last_read_at is None else now - self._last_read_at
        cpu = self._read_cpu() if self._track_cpu else ()
        network = self._read_network() if self._track_network else {}
        process_cpu = self._read_processes() if self._track_processes else {}
        self._last_read_at = now
        self._latest = SampleSet(
            taken_at=now,
            interval=elapsed,
            cpu_percent=cpu,
            network=network,
            process_cpu=process_cpu,
        )
        return self._latest

    def _read_cpu(self) -> tuple[float, ...]:
        try:
            current = psutil.cpu_times(percpu=True)
        except (OSError, RuntimeError):
            logger.debug("cpu_times unavailable", exc_info=True)
            return ()
        previous, self._cpu_times = self._cpu_times, current
        if previous is None:
            return tuple(0.0 for _ in current)
        return tuple(cpu_percentages(previous, current))

    def _read_network(self) -> dict[str, TrafficDelta]:
        try:
            current = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError):
            logger.debug("net_io_counters unavailable", exc_info=True)
            return {}
        previous, self._net_counters = self._net_counters, dict(current)
        return traffic_deltas(previous, current)

    def _read_processes(self) -> dict[int, float]:
        """
        CPU percent per pid since the previous tick.

        Process handles are cached so psutil can diff their CPU times; a pid
        seen for the first time reports 0.0. Handles of exited processes are
        dropped.
        """
        try:
            pids = psutil.pids()
        except (OSError, RuntimeError):
            logger.debug("process table unavailable", exc_info=True)
            return {}

        usage: dict[int, float] = {}
        for pid in pids:
            proc = self._procs.get(pid)
            try:
                if proc is None or not proc.is_running():
                    # New pid, or the pid was reused by another process
                    proc = psutil.Process(pid)
                    self._procs[pid] = proc
                usage[pid] = proc.cpu_percent(interval=None)
            except (psutil.NoSuchProcess, psutil.ZombieProcess):
                continue
            except psutil.AccessDenied:
                usage[pid] = 0.0

        for pid in list(self._procs):
            if pid not in usage:
                del self._procs[pid]
        return usage
