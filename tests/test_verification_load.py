"""Verification Test: Load Test - many processes and concurrent callers.

Spawns a scaled-down batch of dummy processes and checks collection stays
fast and complete, and that concurrent engine calls stay independent.
"""

import multiprocessing
import os
import time
from concurrent.futures import ThreadPoolExecutor
from queue import Empty, Queue

import pytest

from hostprobe.collectors import ProcessCollector
from hostprobe.engine import TelemetryEngine
from hostprobe.monitor import MonitorSnapshot, SystemMonitor
from hostprobe.query import ProcessQuery
from hostprobe.sampler import TelemetrySampler


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


@pytest.fixture
def dummy_processes():
    """Spawn dummy processes; fewer in CI to avoid resource exhaustion."""
    is_ci = os.environ.get("CI", "false").lower() == "true"
    num_processes = 50 if is_ci else 200

    processes = []
    try:
        for _ in range(num_processes):
            p = multiprocessing.Process(target=dummy_worker, args=(30.0,))
            p.start()
            processes.append(p)
        yield processes
    finally:
        for p in processes:
            if p.is_alive():
                p.terminate()
        for p in processes:
            p.join(timeout=1.0)


class TestLoadTest:
    """Load test verification suite tests."""

    def test_collector_sees_many_processes(self, dummy_processes):
        """Test the collector lists the spawned processes within a time bound."""
        sampler = TelemetrySampler(interval=10.0, cpu=False, network=False)
        sampler.refresh()

        start_time = time.perf_counter()
        sampler.refresh()
        processes = ProcessCollector(sampler).collect()
        collection_time = time.perf_counter() - start_time

        assert collection_time < 3.0, f"Collection took {collection_time:.2f}s, expected < 3.0s"
        pids = {proc.pid for proc in processes}
        seen = sum(1 for p in dummy_processes if p.pid in pids)
        assert seen >= len(dummy_processes) // 2

    def test_search_limit_under_load(self, dummy_processes):
        """Test search truncates to the default limit with many processes."""
        envelope = TelemetryEngine(window=0.05).search_processes(ProcessQuery())
        assert envelope.success is True
        assert len(envelope.data) == 50

    def test_multiple_poll_cycles_with_load(self, dummy_processes):
        """Test the monitor completes several poll cycles under load."""
        queue: Queue[MonitorSnapshot] = Queue()
        monitor = SystemMonitor(queue, poll_rate=0.2)

        monitor.start()
        try:
            snapshots_received = 0
            start_time = time.time()
            while time.time() - start_time < 8.0 and snapshots_received < 3:
                try:
                    snapshot = queue.get(timeout=2.0)
                except Empty:
                    continue
                snapshots_received += 1
                assert snapshot.processes

            assert snapshots_received >= 3, (
                f"Expected at least 3 snapshots, got {snapshots_received}"
            )
        finally:
            monitor.stop()

    def test_concurrent_engine_calls(self):
        """Test concurrent calls against one shared sampler are independent."""
        sampler = TelemetrySampler(interval=0.2)
        engine = TelemetryEngine(sampler)
        calls = [
            engine.cpu,
            engine.memory,
            engine.networks,
            engine.processes,
            engine.full_report,
            lambda: engine.search_processes(ProcessQuery(limit=5)),
        ] * 4

        sampler.start()
        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                envelopes = list(pool.map(lambda call: call(), calls))
        finally:
            sampler.stop()

        assert all(envelope.success for envelope in envelopes)
        searches = envelopes[5::6]
        assert all(len(envelope.data) <= 5 for envelope in searches)
        reports = envelopes[4::6]
        assert all(len(envelope.data.processes) <= 20 for envelope in reports)
