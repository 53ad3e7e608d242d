"""Full report: every collector's output from one coordinated refresh."""

from __future__ import annotations

import logging

from hostprobe.collectors import (
    CpuCollector,
    DiskCollector,
    HostInfoCollector,
    MemoryCollector,
    NetworkCollector,
    ProcessCollector,
)
from hostprobe.config import REPORT_PROCESS_CAP, SAMPLE_WINDOW_SECONDS
from hostprobe.envelope import timestamp
from hostprobe.models import FullReport
from hostprobe.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


class ReportAggregator:
    """
    Builds a FullReport from all six collectors.

    CPU, network and process deltas for one report all come from a single
    SampleSet: the shared sampler's latest one, or, without a shared sampler,
    two readings ``window`` seconds apart on a private sampler. Disks and
    networks are re-enumerated for every report.
    """

    process_cap = REPORT_PROCESS_CAP

    def __init__(
        self,
        sampler: TelemetrySampler | None = None,
        window: float = SAMPLE_WINDOW_SECONDS,
    ) -> None:
        self._sampler = sampler
        self._window = window

    def collect_full(self) -> FullReport:
        if self._sampler is not None:
            samples = self._sampler.latest()
        else:
            samples = TelemetrySampler.one_shot(
                self._window, cpu=True, network=True, processes=True
            )

        host = HostInfoCollector().collect()
        cpu = CpuCollector(samples=samples).collect()
        memory = MemoryCollector().collect()
        disks = DiskCollector().collect()
        networks = NetworkCollector(samples=samples).collect()
        # First entries in enumeration order; no sorting
        processes = ProcessCollector(samples=samples).collect()[: self.process_cap]

        logger.debug(
            "Report: %d cores, %d disks, %d interfaces, %d processes",
            len(cpu),
            len(disks),
            len(networks),
            len(processes),
        )
        return FullReport(
            host=host,
            cpu=tuple(cpu),
            memory=memory,
            disks=tuple(disks),
            networks=tuple(networks),
            processes=tuple(processes),
            generated_at=timestamp(),
        )
