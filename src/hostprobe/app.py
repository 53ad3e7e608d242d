"""hostprobe top - live Textual dashboard."""

from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Input, Static
from textual.widgets.data_table import CellDoesNotExist, DuplicateKey, RowDoesNotExist

from hostprobe.config import MONITOR_POLL_SECONDS
from hostprobe.models import ProcessEntry
from hostprobe.monitor import MonitorSnapshot, SystemMonitor
from hostprobe.query import ProcessQueryEngine


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_duration(seconds: int) -> str:
    """Format seconds as HH:MM:SS, prefixed with days when over a day."""
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _bar(percent: float, color: str) -> str:
    filled = min(int(percent / 5), 20)
    return f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (20 - filled)


class HeaderStats(Static):
    """Header widget showing CPU, memory and host statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: MonitorSnapshot | None = None

    @property
    def snapshot(self) -> MonitorSnapshot | None:
        return self._snapshot

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, snapshot: MonitorSnapshot) -> None:
        """Update the statistics from a monitor snapshot."""
        self._snapshot = snapshot
        try:
            self.query_one("#cpu-info", Static).update(self._get_cpu_info())
            self.query_one("#mem-info", Static).update(self._get_mem_info())
        except NoMatches:
            pass  # Not mounted yet

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        if self._snapshot is None or not self._snapshot.cpu:
            return "Loading CPU info..."
        lines = []
        for core in self._snapshot.cpu:
            # Escaped bracket opens the bar container
            lines.append(
                f"{core.name:<6}\\[{_bar(core.usage_percent, 'green')}] {core.usage_percent:5.1f}%"
            )
        return "\n".join(lines)

    def _get_mem_info(self) -> str:
        """Get memory and host info display."""
        if self._snapshot is None or self._snapshot.memory.total_bytes == 0:
            return "Loading memory info..."

        mem = self._snapshot.memory
        swap_percent = mem.percent_of(mem.used_swap_bytes, mem.total_swap_bytes)
        host = self._snapshot.host
        load = self._snapshot.cpu[0].load if self._snapshot.cpu else None
        load_str = (
            f"{load.one_min:.2f} {load.five_min:.2f} {load.fifteen_min:.2f}" if load else "n/a"
        )
        gib = 1024**3

        return (
            f"Mem\\[{_bar(mem.used_percent, 'cyan')}] "
            f"{mem.used_bytes / gib:.1f}G/{mem.total_bytes / gib:.1f}G\n"
            f"Swp\\[{_bar(swap_percent, 'yellow')}] "
            f"{mem.used_swap_bytes / gib:.1f}G/{mem.total_swap_bytes / gib:.1f}G\n"
            f"Load average: {load_str}\n"
            f"Uptime: {format_duration(host.uptime_seconds)}\n"
            f"{host.hostname} ({host.os} {host.kernel_version})"
        )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True  # Default: descending for CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    @property
    def pids(self) -> set[int]:
        """PIDs currently shown."""
        return set(self._current_pids)

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("STATE", key="status", width=10)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("RES", key="mem", width=8)
        table.add_column("TIME", key="time", width=12)
        table.add_column("NAME", key="name", width=16)
        table.add_column("Command", key="command")

    def update_processes(self, processes: list[ProcessEntry]) -> None:
        """
        Update the process table with new data.

        Existing rows are updated in place; rows for vanished pids are removed.
        """
        table = self.query_one("#process-table", DataTable)
        sorted_processes = self._sort_processes(processes)
        new_pids = {proc.pid for proc in sorted_processes}

        for pid in self._current_pids - new_pids:
            try:
                table.remove_row(str(pid))
            except RowDoesNotExist:
                pass

        for proc in sorted_processes:
            if proc.pid in self._current_pids:
                self._update_row(table, proc)
            else:
                self._add_row(table, proc)

        self._current_pids = new_pids

    def _sort_processes(self, processes: list[ProcessEntry]) -> list[ProcessEntry]:
        """Sort processes based on the current sort key."""
        key_func = {
            SortKey.CPU: lambda p: p.cpu_usage_percent,
            SortKey.MEM: lambda p: p.memory_bytes,
            SortKey.PID: lambda p: p.pid,
            SortKey.NAME: lambda p: p.name.lower(),
        }
        return sorted(processes, key=key_func[self._sort_key], reverse=self._sort_reverse)

    @staticmethod
    def _cells(proc: ProcessEntry) -> dict[str, str]:
        return {
            "pid": str(proc.pid),
            "status": proc.status.label[:10],
            "cpu": f"{proc.cpu_usage_percent:5.1f}",
            "mem": format_bytes(proc.memory_bytes),
            "time": format_duration(proc.run_time_seconds),
            "name": proc.name[:16],
            "command": " ".join(proc.command)[:50] or proc.name,
        }

    def _update_row(self, table: DataTable, proc: ProcessEntry) -> None:
        try:
            for column, value in self._cells(proc).items():
                table.update_cell(str(proc.pid), column, value)
        except CellDoesNotExist:
            pass  # Row removed meanwhile

    def _add_row(self, table: DataTable, proc: ProcessEntry) -> None:
        try:
            table.add_row(*self._cells(proc).values(), key=str(proc.pid))
        except DuplicateKey:
            pass


class HostprobeApp(App):
    """Live host telemetry dashboard."""

    TITLE = "hostprobe"
    SUB_TITLE = "Live Host Telemetry"
    AUTO_FOCUS = "#process-table"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }

    #search {
        dock: bottom;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("slash", "search", "Search"),
    ]

    def __init__(self, poll_rate: float = MONITOR_POLL_SECONDS) -> None:
        """Initialize the HostprobeApp."""
        super().__init__()
        self._update_queue: Queue[MonitorSnapshot] = Queue()
        self._monitor = SystemMonitor(self._update_queue, poll_rate=poll_rate)
        self._query = ProcessQueryEngine()
        self._search_pattern: str | None = None
        self._last_snapshot: MonitorSnapshot | None = None

    @property
    def search_pattern(self) -> str | None:
        return self._search_pattern

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        search = Input(placeholder="Filter by process name (empty clears)", id="search")
        search.display = False
        search.disabled = True  # Unfocusable until opened
        yield search
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.show_snapshot(snapshot)

    def show_snapshot(self, snapshot: MonitorSnapshot) -> None:
        """Render a snapshot, applying the current name filter to the table."""
        self._last_snapshot = snapshot
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        processes = self._query.search(
            snapshot.processes, self._search_pattern, limit=len(snapshot.processes)
        )
        self.query_one(ProcessTable).update_processes(processes)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        new_sort_key = self.query_one(ProcessTable).cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_search(self) -> None:
        """Open the name filter box."""
        search = self.query_one("#search", Input)
        search.value = self._search_pattern or ""
        search.disabled = False
        search.display = True
        search.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Apply the name filter and close the box."""
        pattern = event.value.strip()
        self._search_pattern = pattern or None
        event.input.display = False
        event.input.disabled = True
        self.query_one("#process-table", DataTable).focus()
        if self._last_snapshot is not None:
            self.show_snapshot(self._last_snapshot)
        self.notify(f"Filter: {pattern}" if pattern else "Filter cleared")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def main(poll_rate: float = MONITOR_POLL_SECONDS) -> None:
    """Run the dashboard."""
    app = HostprobeApp(poll_rate=poll_rate)
    app.run()


if __name__ == "__main__":
    main()
