"""Collectors: one category of OS read each, normalized into hostprobe models.

Every collector accepts an optional shared TelemetrySampler. With one, delta
metrics (CPU usage, interval traffic, process CPU) come from the sampler's most
recent SampleSet. Without one, each call takes its own two readings on a
private sampler, so concurrent calls never share state.
"""

from __future__ import annotations

import getpass
import logging
import platform
import socket
import time
from pathlib import Path

import psutil

from hostprobe.config import NULL_MAC_ADDRESS, SAMPLE_WINDOW_SECONDS, UNKNOWN
from hostprobe.errors import CollectionError
from hostprobe.models import (
    CpuCore,
    DiskVolume,
    HostInfo,
    LoadAverage,
    MemoryInfo,
    NetworkInterface,
    ProcessEntry,
    ProcessStatus,
)
from hostprobe.sampler import SampleSet, TelemetrySampler

logger = logging.getLogger(__name__)

CPUINFO_PATH = Path("/proc/cpuinfo")
SYS_BLOCK_PATH = Path("/sys/class/block")


class _SampledCollector:
    """
    Base for collectors that need delta metrics.

    ``samples`` pins a SampleSet taken elsewhere, so several collectors can
    report from the same readings.
    """

    # Which sampler channels a private one-shot capture needs
    _channels: dict[str, bool] = {}

    def __init__(
        self,
        sampler: TelemetrySampler | None = None,
        window: float = SAMPLE_WINDOW_SECONDS,
        *,
        samples: SampleSet | None = None,
    ) -> None:
        self._sampler = sampler
        self._window = window
        self._pinned = samples

    def _samples(self) -> SampleSet:
        if self._pinned is not None:
            return self._pinned
        if self._sampler is not None:
            return self._sampler.latest()
        return TelemetrySampler.one_shot(self._window, **self._channels)


class HostInfoCollector:
    """Host identity and uptime. Never fails; unreadable fields fall back."""

    def collect(self) -> HostInfo:
        boot_time = _boot_time()
        uptime = max(0, int(time.time()) - boot_time) if boot_time else 0
        return HostInfo(
            os=_os_name(),
            hostname=_hostname(),
            kernel_version=platform.release() or UNKNOWN,
            uptime_seconds=uptime,
            boot_time=boot_time,
            current_user=_current_user(),
        )


def _os_name() -> str:
    try:
        name = platform.freedesktop_os_release().get("NAME")
    except (OSError, AttributeError):
        name = None
    return name or platform.system() or UNKNOWN


def _hostname() -> str:
    try:
        return socket.gethostname() or UNKNOWN
    except OSError:
        return UNKNOWN


def _boot_time() -> int:
    try:
        return int(psutil.boot_time())
    except (OSError, RuntimeError):
        logger.debug("boot_time unavailable", exc_info=True)
        return 0


def _current_user() -> str:
    try:
        return getpass.getuser() or UNKNOWN
    except (OSError, KeyError, ImportError):
        return UNKNOWN


class CpuCollector(_SampledCollector):
    """Per-logical-core identity and usage plus the system load average."""

    _channels = {"cpu": True}

    def collect(self) -> list[CpuCore]:
        try:
            logical = psutil.cpu_count(logical=True) or 0
        except (OSError, RuntimeError):
            logger.debug("cpu_count unavailable", exc_info=True)
            logical = 0
        if logical == 0:
            return []

        samples = self._samples()
        physical = _physical_cores()
        load = _load_average()
        vendor_id, brand = _cpu_identity()
        frequencies = _frequencies(logical)

        return [
            CpuCore(
                name=f"cpu{index}",
                vendor_id=vendor_id,
                brand=brand,
                frequency_mhz=frequencies[index],
                usage_percent=samples.cpu_usage(index),
                physical_cores=physical,
                load=load,
            )
            for index in range(logical)
        ]


def _physical_cores() -> int:
    try:
        return psutil.cpu_count(logical=False) or 0
    except (OSError, RuntimeError):
        return 0


def _load_average() -> LoadAverage:
    try:
        one, five, fifteen = psutil.getloadavg()
    except (OSError, AttributeError, RuntimeError):
        logger.debug("load average unavailable", exc_info=True)
        return LoadAverage(0.0, 0.0, 0.0)
    return LoadAverage(float(one), float(five), float(fifteen))


def _cpu_identity() -> tuple[str, str]:
    """(vendor_id, brand) from /proc/cpuinfo where present."""
    vendor_id = brand = ""
    try:
        text = CPUINFO_PATH.read_text(errors="replace")
    except OSError:
        text = ""
    for line in text.splitlines():
        key, _, value = line.partition(":")
        key = key.strip()
        if key == "vendor_id" and not vendor_id:
            vendor_id = value.strip()
        elif key in ("model name", "Model") and not brand:
            brand = value.strip()
        if vendor_id and brand:
            break
    if not brand:
        brand = platform.processor()
    return vendor_id or UNKNOWN, brand or UNKNOWN


def _frequencies(logical: int) -> list[int]:
    """Current frequency in MHz per logical core; 0 where unknown."""
    try:
        per_core = psutil.cpu_freq(percpu=True) or []
    except (OSError, NotImplementedError, RuntimeError):
        per_core = []
    if len(per_core) == logical:
        return [int(freq.current) for freq in per_core]

    try:
        overall = psutil.cpu_freq()
    except (OSError, NotImplementedError, RuntimeError):
        overall = None
    current = int(overall.current) if overall else 0
    return [current] * logical


class MemoryCollector:
    """Physical and swap memory."""

    def collect(self) -> MemoryInfo:
        try:
            mem = psutil.virtual_memory()
        except (OSError, RuntimeError) as exc:
            raise CollectionError("memory", str(exc)) from exc

        try:
            swap = psutil.swap_memory()
            total_swap, used_swap, free_swap = int(swap.total), int(swap.used), int(swap.free)
        except (OSError, RuntimeError):
            logger.debug("swap counters unavailable", exc_info=True)
            total_swap = used_swap = free_swap = 0

        total, used = int(mem.total), int(mem.used)
        return MemoryInfo(
            total_bytes=total,
            used_bytes=used,
            free_bytes=int(mem.free),
            total_swap_bytes=total_swap,
            used_swap_bytes=used_swap,
            free_swap_bytes=free_swap,
            used_percent=MemoryInfo.percent_of(used, total),
        )


class DiskCollector:
    """Mounted volumes, re-enumerated on every call."""

    def collect(self) -> list[DiskVolume]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except (OSError, RuntimeError) as exc:
            raise CollectionError("disks", str(exc)) from exc

        volumes: list[DiskVolume] = []
        for part in partitions:
            try:
                usage = psutil.disk_usage(part.mountpoint)
                total, available = int(usage.total), int(usage.free)
            except OSError:
                logger.debug("disk_usage failed for %s", part.mountpoint, exc_info=True)
                total = available = 0

            volumes.append(
                DiskVolume(
                    name=part.device or UNKNOWN,
                    file_system=part.fstype or UNKNOWN,
                    mount_point=part.mountpoint,
                    total_bytes=total,
                    available_bytes=available,
                    removable=_is_removable(part.device, part.opts),
                )
            )
        return volumes


def _is_removable(device: str, opts: str) -> bool:
    """Best effort: Windows reports it in opts, Linux in sysfs."""
    if "removable" in (opts or "").split(","):
        return True
    if not device.startswith("/dev/"):
        return False
    node = SYS_BLOCK_PATH / device[len("/dev/"):]
    try:
        resolved = node.resolve(strict=True)
    except OSError:
        return False
    # A partition's flag lives on its parent disk
    for candidate in (resolved / "removable", resolved.parent / "removable"):
        try:
            return candidate.read_text().strip() == "1"
        except OSError:
            continue
    return False


class NetworkCollector(_SampledCollector):
    """Network interfaces with interval and cumulative traffic counters."""

    _channels = {"network": True}

    def collect(self) -> list[NetworkInterface]:
        samples = self._samples()
        # Totals are read after the samples so they never trail the deltas
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError) as exc:
            raise CollectionError("networks", str(exc)) from exc

        macs = _mac_addresses()

        interfaces: list[NetworkInterface] = []
        for name, totals in counters.items():
            delta = samples.traffic(name)
            interfaces.append(
                NetworkInterface(
                    name=name,
                    mac_address=macs.get(name, NULL_MAC_ADDRESS),
                    received_bytes=delta.received_bytes,
                    transmitted_bytes=delta.transmitted_bytes,
                    packets_received=delta.packets_received,
                    packets_transmitted=delta.packets_transmitted,
                    total_received_bytes=int(totals.bytes_recv),
                    total_transmitted_bytes=int(totals.bytes_sent),
                )
            )
        return interfaces


def _mac_addresses() -> dict[str, str]:
    try:
        addrs = psutil.net_if_addrs()
    except (OSError, RuntimeError):
        logger.debug("net_if_addrs unavailable", exc_info=True)
        return {}

    macs: dict[str, str] = {}
    for name, entries in addrs.items():
        for entry in entries:
            if entry.family == psutil.AF_LINK and entry.address:
                macs[name] = entry.address.replace("-", ":").lower()
                break
    return macs


class ProcessCollector(_SampledCollector):
    """
    Running processes in OS enumeration order.

    Processes that exit mid-enumeration are skipped. Attributes the OS refuses
    to reveal (including most of a zombie's) fall back to empty values.
    """

    _channels = {"processes": True}

    _ATTRS = ["pid", "name", "status", "memory_info", "create_time", "cmdline"]

    def collect(self) -> list[ProcessEntry]:
        samples = self._samples()
        now = time.time()
        processes: list[ProcessEntry] = []

        try:
            iterator = psutil.process_iter(attrs=self._ATTRS, ad_value=None)
            for proc in iterator:
                processes.append(self._entry(proc.info, samples, now))
        except (OSError, RuntimeError) as exc:
            raise CollectionError("processes", str(exc)) from exc

        return processes

    @staticmethod
    def _entry(info: dict, samples: SampleSet, now: float) -> ProcessEntry:
        pid = int(info.get("pid") or 0)
        mem_info = info.get("memory_info")
        create_time = info.get("create_time")
        run_time = max(0, int(now - create_time)) if create_time else 0
        return ProcessEntry(
            pid=pid,
            name=info.get("name") or "",
            cpu_usage_percent=samples.process_cpu_percent(pid),
            memory_bytes=int(mem_info.rss) if mem_info else 0,
            status=ProcessStatus.from_psutil(info.get("status")),
            run_time_seconds=run_time,
            command=tuple(info.get("cmdline") or ()),
        )
