"""Tests for the full report aggregator."""

import json
import re

import pytest

from hostprobe import report
from hostprobe.models import FullReport
from hostprobe.report import ReportAggregator
from hostprobe.sampler import TelemetrySampler


@pytest.fixture
def many_processes(monkeypatch, make_process):
    """Replace the process collector with one returning 100 processes."""
    snapshot = [make_process(pid, f"worker{pid}") for pid in range(1, 101)]

    class FakeProcessCollector:
        def __init__(self, *args, **kwargs):
            pass

        def collect(self):
            return list(snapshot)

    monkeypatch.setattr(report, "ProcessCollector", FakeProcessCollector)
    return snapshot


def test_processes_capped_at_twenty(many_processes):
    """Test the report keeps only the first 20 processes, unsorted."""
    full = ReportAggregator(window=0.01).collect_full()
    assert len(full.processes) == 20
    assert [p.pid for p in full.processes] == list(range(1, 21))


def test_cap_is_a_constant():
    """Test the cap is fixed at 20."""
    assert ReportAggregator.process_cap == 20


def test_collectors_share_one_sample_set(monkeypatch):
    """Test CPU, network and process collectors read the same SampleSet."""
    seen = []

    def recording(real):
        class Recording(real):
            def __init__(self, *args, **kwargs):
                seen.append(kwargs.get("samples"))
                super().__init__(*args, **kwargs)

        return Recording

    for name in ("CpuCollector", "NetworkCollector", "ProcessCollector"):
        monkeypatch.setattr(report, name, recording(getattr(report, name)))

    ReportAggregator(window=0.01).collect_full()
    assert len(seen) == 3
    assert seen[0] is not None
    assert all(samples is seen[0] for samples in seen)


def test_shared_sampler_is_used():
    """Test a shared sampler provides the report's deltas."""
    sampler = TelemetrySampler(interval=10.0, window=0.01)
    samples = sampler.latest()
    full = ReportAggregator(sampler).collect_full()
    assert [core.usage_percent for core in full.cpu] == [
        samples.cpu_usage(i) for i in range(len(full.cpu))
    ]


def test_real_report():
    """Test a real report is capped, stamped and survives a JSON round trip."""
    full = ReportAggregator(window=0.05).collect_full()
    assert isinstance(full, FullReport)
    assert len(full.processes) <= 20
    assert full.cpu
    assert full.memory.total_bytes > 0
    assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$", full.generated_at)

    data = json.loads(json.dumps(full.to_dict()))
    assert set(data) == {"system", "cpu", "memory", "disks", "networks", "processes", "timestamp"}
    assert FullReport.from_dict(data) == full
