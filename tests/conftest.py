"""Shared fixtures for hostprobe tests."""

import pytest

from hostprobe.models import ProcessEntry, ProcessStatus


@pytest.fixture
def make_process():
    """Factory for ProcessEntry with sensible defaults."""

    def _make(pid: int = 1, name: str = "proc", **overrides) -> ProcessEntry:
        fields = {
            "pid": pid,
            "name": name,
            "cpu_usage_percent": 0.0,
            "memory_bytes": 1024,
            "status": ProcessStatus.from_psutil("sleeping"),
            "run_time_seconds": 10,
            "command": (f"/usr/bin/{name}",),
        }
        fields.update(overrides)
        return ProcessEntry(**fields)

    return _make
