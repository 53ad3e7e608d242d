"""Tests for the hostprobe dashboard."""

import pytest

from hostprobe.app import (
    HeaderStats,
    HostprobeApp,
    ProcessTable,
    SortKey,
    format_bytes,
    format_duration,
)
from hostprobe.models import CpuCore, HostInfo, LoadAverage, MemoryInfo
from hostprobe.monitor import MonitorSnapshot


def _snapshot(processes) -> MonitorSnapshot:
    load = LoadAverage(1.0, 0.5, 0.25)
    return MonitorSnapshot(
        host=HostInfo("Linux", "box", "6.1", 3600, 0, "root"),
        cpu=[
            CpuCore("cpu0", "GenuineIntel", "Xeon", 2400, 10.0, 2, load),
            CpuCore("cpu1", "GenuineIntel", "Xeon", 2400, 20.0, 2, load),
        ],
        memory=MemoryInfo(16 * 1024**3, 8 * 1024**3, 8 * 1024**3, 4 * 1024**3, 0, 4 * 1024**3, 50.0),
        processes=list(processes),
    )


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert "B" in format_bytes(500)


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert "K" in format_bytes(2048)


def test_format_bytes_megabytes():
    """Test format_bytes with megabyte values."""
    assert "M" in format_bytes(5242880)


def test_format_bytes_gigabytes():
    """Test format_bytes with gigabyte values."""
    assert "G" in format_bytes(1073741824)


def test_format_duration():
    """Test format_duration renders clock time and days."""
    assert format_duration(0) == "00:00:00"
    assert format_duration(3661) == "01:01:01"
    assert format_duration(90061) == "1 days, 01:01:01"


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        """Test SortKey enum has expected values."""
        assert SortKey.CPU.value == "cpu"
        assert SortKey.MEM.value == "mem"
        assert SortKey.PID.value == "pid"
        assert SortKey.NAME.value == "name"

    def test_sort_key_members(self):
        """Test SortKey enum has all expected members."""
        assert list(SortKey) == [SortKey.CPU, SortKey.MEM, SortKey.PID, SortKey.NAME]


@pytest.mark.asyncio
async def test_app_creation():
    """Test HostprobeApp can be instantiated."""
    app = HostprobeApp()
    assert app.title == "hostprobe"
    assert app.sub_title == "Live Host Telemetry"
    assert app._monitor is not None
    assert app._update_queue is not None
    assert app.search_pattern is None


@pytest.mark.asyncio
async def test_app_compose():
    """Test HostprobeApp composes correctly."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header-stats") is not None
        assert pilot.app.query_one("#process-table") is not None
        assert pilot.app.query_one("#search").display is False


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit
        assert not app._monitor.is_running


@pytest.mark.asyncio
async def test_app_sort_binding():
    """Test that F6 binding cycles sort key."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        initial_sort = process_table.sort_key

        await pilot.press("f6")

        assert process_table.sort_key != initial_sort


@pytest.mark.asyncio
async def test_process_table_cycle_sort():
    """Test ProcessTable sort key cycling."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        assert process_table.sort_key == SortKey.CPU
        assert process_table.cycle_sort() == SortKey.MEM
        assert process_table.cycle_sort() == SortKey.PID
        assert process_table.cycle_sort() == SortKey.NAME
        assert process_table.cycle_sort() == SortKey.CPU


@pytest.mark.asyncio
async def test_process_table_update_processes(make_process):
    """Test ProcessTable updates with new process data."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes(
            [
                make_process(100, "test1", cpu_usage_percent=10.0),
                make_process(200, "test2", cpu_usage_percent=20.0),
            ]
        )

        assert process_table.pids == {100, 200}


@pytest.mark.asyncio
async def test_process_table_removes_old_processes(make_process):
    """Test ProcessTable removes processes that no longer exist."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes([make_process(100, "test1"), make_process(200, "test2")])
        process_table.update_processes([make_process(200, "test2", cpu_usage_percent=25.0)])

        assert process_table.pids == {200}


@pytest.mark.asyncio
async def test_search_filters_table(make_process):
    """Test the name filter narrows the table and an empty filter clears it."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        app._monitor.stop()
        while not app._update_queue.empty():
            app._update_queue.get_nowait()
        snapshot = _snapshot(
            [
                make_process(1, "chrome"),
                make_process(2, "Chrome Helper"),
                make_process(3, "finder"),
            ]
        )
        app.show_snapshot(snapshot)
        process_table = pilot.app.query_one(ProcessTable)
        assert process_table.pids == {1, 2, 3}

        await pilot.press("slash")
        await pilot.press(*"chrome")
        await pilot.press("enter")
        await pilot.pause()

        assert app.search_pattern == "chrome"
        assert process_table.pids == {1, 2}

        await pilot.press("slash")
        search = pilot.app.query_one("#search")
        search.value = ""
        await pilot.press("enter")
        await pilot.pause()

        assert app.search_pattern is None
        assert process_table.pids == {1, 2, 3}


@pytest.mark.asyncio
async def test_app_receives_updates_from_monitor():
    """Test that app receives updates from the system monitor."""
    app = HostprobeApp(poll_rate=0.5)
    async with app.run_test() as pilot:
        await pilot.pause(3)

        assert app._monitor.is_running
        assert len(pilot.app.query_one(ProcessTable).pids) > 0


@pytest.mark.asyncio
async def test_header_stats_update():
    """Test that header stats can be updated."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#header-stats", HeaderStats)
        snapshot = _snapshot([])

        header.update_stats(snapshot)

        assert header.snapshot is snapshot
        mem_info = header._get_mem_info()
        assert "Load average: 1.00 0.50 0.25" in mem_info
        assert "Uptime: 01:00:00" in mem_info
        assert "box" in mem_info
        assert "cpu1" in header._get_cpu_info()


@pytest.mark.asyncio
async def test_process_table_has_focus_at_startup():
    """Test keys reach the bindings because the closed search box cannot take focus."""
    app = HostprobeApp()
    async with app.run_test() as pilot:
        assert pilot.app.focused is pilot.app.query_one("#process-table")
        search = pilot.app.query_one("#search")
        assert search.disabled is True

        await pilot.press("slash")
        assert search.display is True
        assert pilot.app.focused is search
        assert search.value == ""
