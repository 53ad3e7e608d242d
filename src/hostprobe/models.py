"""Data models for hostprobe.

Every model is an immutable snapshot. ``to_dict`` renders the JSON wire shape
served over HTTP and ``from_dict`` parses it back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProcessState(Enum):
    """Known process states. OTHER carries an OS label we do not recognize."""

    RUNNING = "Running"
    SLEEPING = "Sleeping"
    DISK_SLEEP = "DiskSleep"
    STOPPED = "Stopped"
    TRACING = "Tracing"
    ZOMBIE = "Zombie"
    DEAD = "Dead"
    WAKE_KILL = "WakeKill"
    WAKING = "Waking"
    IDLE = "Idle"
    LOCKED = "Locked"
    WAITING = "Waiting"
    PARKED = "Parked"
    UNKNOWN = "Unknown"
    OTHER = "Other"


# psutil.STATUS_* values -> state
_PSUTIL_STATES: dict[str, ProcessState] = {
    "running": ProcessState.RUNNING,
    "sleeping": ProcessState.SLEEPING,
    "disk-sleep": ProcessState.DISK_SLEEP,
    "stopped": ProcessState.STOPPED,
    "tracing-stop": ProcessState.TRACING,
    "zombie": ProcessState.ZOMBIE,
    "dead": ProcessState.DEAD,
    "wake-kill": ProcessState.WAKE_KILL,
    "waking": ProcessState.WAKING,
    "idle": ProcessState.IDLE,
    "locked": ProcessState.LOCKED,
    "waiting": ProcessState.WAITING,
    "parked": ProcessState.PARKED,
}


@dataclass(slots=True, frozen=True)
class ProcessStatus:
    """Process state with a fallback for OS-specific labels."""

    state: ProcessState
    raw: str = ""

    @classmethod
    def from_psutil(cls, raw: str | None) -> ProcessStatus:
        """Map a psutil status string (e.g. 'sleeping') to a ProcessStatus."""
        if not raw:
            return cls(ProcessState.UNKNOWN)
        state = _PSUTIL_STATES.get(raw.lower())
        if state is None:
            # OTHER never carries a label of a known state
            return cls.from_label(raw)
        return cls(state)

    @classmethod
    def from_label(cls, label: str) -> ProcessStatus:
        """Inverse of ``label``."""
        for state in ProcessState:
            if state is not ProcessState.OTHER and state.value == label:
                return cls(state)
        return cls(ProcessState.OTHER, label)

    @property
    def label(self) -> str:
        """Display label; the raw OS label for OTHER."""
        if self.state is ProcessState.OTHER:
            return self.raw
        return self.state.value


@dataclass(slots=True, frozen=True)
class HostInfo:
    """Static and slow-changing host facts."""

    os: str
    hostname: str
    kernel_version: str
    uptime_seconds: int
    boot_time: int  # Epoch seconds
    current_user: str

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "os": self.os,
            "hostname": self.hostname,
            "kernel_version": self.kernel_version,
            "uptime": self.uptime_seconds,
            "boot_time": self.boot_time,
            "current_user": self.current_user,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HostInfo:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            os=data["os"],
            hostname=data["hostname"],
            kernel_version=data["kernel_version"],
            uptime_seconds=data["uptime"],
            boot_time=data["boot_time"],
            current_user=data["current_user"],
        )


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """System load over 1, 5 and 15 minutes."""

    one_min: float
    five_min: float
    fifteen_min: float

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "one_min": self.one_min,
            "five_min": self.five_min,
            "fifteen_min": self.fifteen_min,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoadAverage:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            one_min=data["one_min"],
            five_min=data["five_min"],
            fifteen_min=data["fifteen_min"],
        )


@dataclass(slots=True, frozen=True)
class CpuCore:
    """
    One logical core.

    ``physical_cores`` and ``load`` are whole-machine values repeated on every
    core of a snapshot.
    """

    name: str
    vendor_id: str
    brand: str
    frequency_mhz: int
    usage_percent: float  # 0.0 - 100.0
    physical_cores: int
    load: LoadAverage

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "name": self.name,
            "vendor_id": self.vendor_id,
            "brand": self.brand,
            "frequency": self.frequency_mhz,
            "usage": self.usage_percent,
            "cores": self.physical_cores,
            "load_average": self.load.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CpuCore:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            name=data["name"],
            vendor_id=data["vendor_id"],
            brand=data["brand"],
            frequency_mhz=data["frequency"],
            usage_percent=data["usage"],
            physical_cores=data["cores"],
            load=LoadAverage.from_dict(data["load_average"]),
        )


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """Physical and swap memory in bytes."""

    total_bytes: int
    used_bytes: int
    free_bytes: int
    total_swap_bytes: int
    used_swap_bytes: int
    free_swap_bytes: int
    used_percent: float

    @staticmethod
    def percent_of(used: int, total: int) -> float:
        """100 * used / total, or 0.0 when total is 0."""
        if total <= 0:
            return 0.0
        return used / total * 100.0

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "total_memory": self.total_bytes,
            "used_memory": self.used_bytes,
            "free_memory": self.free_bytes,
            "total_swap": self.total_swap_bytes,
            "used_swap": self.used_swap_bytes,
            "free_swap": self.free_swap_bytes,
            "memory_percent": self.used_percent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryInfo:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            total_bytes=data["total_memory"],
            used_bytes=data["used_memory"],
            free_bytes=data["free_memory"],
            total_swap_bytes=data["total_swap"],
            used_swap_bytes=data["used_swap"],
            free_swap_bytes=data["free_swap"],
            used_percent=data["memory_percent"],
        )


@dataclass(slots=True, frozen=True)
class DiskVolume:
    """A mounted volume. ``used_bytes`` is always total minus available."""

    name: str
    file_system: str
    mount_point: str
    total_bytes: int
    available_bytes: int
    removable: bool

    @property
    def used_bytes(self) -> int:
        """Total minus available."""
        return self.total_bytes - self.available_bytes

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "name": self.name,
            "file_system": self.file_system,
            "total_space": self.total_bytes,
            "available_space": self.available_bytes,
            "used_space": self.used_bytes,
            "mount_point": self.mount_point,
            "is_removable": self.removable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiskVolume:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            name=data["name"],
            file_system=data["file_system"],
            mount_point=data["mount_point"],
            total_bytes=data["total_space"],
            available_bytes=data["available_space"],
            removable=data["is_removable"],
        )


@dataclass(slots=True, frozen=True)
class NetworkInterface:
    """
    A network interface.

    received/transmitted bytes and packet counts cover the last sampling
    interval; the total_* counters are cumulative since boot.
    """

    name: str
    mac_address: str
    received_bytes: int
    transmitted_bytes: int
    packets_received: int
    packets_transmitted: int
    total_received_bytes: int
    total_transmitted_bytes: int

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "name": self.name,
            "mac_address": self.mac_address,
            "received_bytes": self.received_bytes,
            "transmitted_bytes": self.transmitted_bytes,
            "packets_received": self.packets_received,
            "packets_transmitted": self.packets_transmitted,
            "total_received": self.total_received_bytes,
            "total_transmitted": self.total_transmitted_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkInterface:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            name=data["name"],
            mac_address=data["mac_address"],
            received_bytes=data["received_bytes"],
            transmitted_bytes=data["transmitted_bytes"],
            packets_received=data["packets_received"],
            packets_transmitted=data["packets_transmitted"],
            total_received_bytes=data["total_received"],
            total_transmitted_bytes=data["total_transmitted"],
        )


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    cpu_usage_percent: float  # 0.0 - 100.0 * core_count
    memory_bytes: int  # RSS
    status: ProcessStatus
    run_time_seconds: int
    command: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "pid": self.pid,
            "name": self.name,
            "cpu_usage": self.cpu_usage_percent,
            "memory_usage": self.memory_bytes,
            "status": self.status.label,
            "run_time": self.run_time_seconds,
            "command": list(self.command),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProcessEntry:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            pid=data["pid"],
            name=data["name"],
            cpu_usage_percent=data["cpu_usage"],
            memory_bytes=data["memory_usage"],
            status=ProcessStatus.from_label(data["status"]),
            run_time_seconds=data["run_time"],
            command=tuple(data["command"]),
        )


@dataclass(slots=True, frozen=True)
class FullReport:
    """All collectors' output from one coordinated refresh."""

    host: HostInfo
    cpu: tuple[CpuCore, ...]
    memory: MemoryInfo
    disks: tuple[DiskVolume, ...]
    networks: tuple[NetworkInterface, ...]
    processes: tuple[ProcessEntry, ...]
    generated_at: str  # YYYY-MM-DD HH:MM:SS, local time

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "system": self.host.to_dict(),
            "cpu": [core.to_dict() for core in self.cpu],
            "memory": self.memory.to_dict(),
            "disks": [disk.to_dict() for disk in self.disks],
            "networks": [iface.to_dict() for iface in self.networks],
            "processes": [proc.to_dict() for proc in self.processes],
            "timestamp": self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FullReport:
        """Parse the wire shape produced by ``to_dict``."""
        return cls(
            host=HostInfo.from_dict(data["system"]),
            cpu=tuple(CpuCore.from_dict(item) for item in data["cpu"]),
            memory=MemoryInfo.from_dict(data["memory"]),
            disks=tuple(DiskVolume.from_dict(item) for item in data["disks"]),
            networks=tuple(NetworkInterface.from_dict(item) for item in data["networks"]),
            processes=tuple(ProcessEntry.from_dict(item) for item in data["processes"]),
            generated_at=data["timestamp"],
        )
