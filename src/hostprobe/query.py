"""Process search: case-insensitive name filter followed by a result cap."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from hostprobe.config import DEFAULT_SEARCH_LIMIT
from hostprobe.models import ProcessEntry


@dataclass(slots=True, frozen=True)
class ProcessQuery:
    """Search parameters. Missing fields mean: no name filter, default limit."""

    name: str | None = None
    limit: int | None = None


@dataclass(slots=True, frozen=True)
class SearchResult:
    """Matched processes, in snapshot order."""

    processes: tuple[ProcessEntry, ...]

    @property
    def count(self) -> int:
        return len(self.processes)

    @property
    def message(self) -> str:
        return f"found {self.count} processes"


class ProcessQueryEngine:
    """Filters and truncates a process snapshot."""

    def __init__(self, default_limit: int = DEFAULT_SEARCH_LIMIT) -> None:
        self._default_limit = default_limit

    def search(
        self,
        snapshot: Sequence[ProcessEntry],
        name_pattern: str | None = None,
        limit: int | None = None,
    ) -> list[ProcessEntry]:
        """
        Keep entries whose name contains ``name_pattern`` (case-insensitive),
        then keep the first ``limit`` of them.

        Args:
            snapshot: Processes in the order they should be reported.
            name_pattern: Substring to look for; None matches everything.
            limit: Maximum result length; None uses the default (50).

        Raises:
            ValueError: If limit is negative.
        """
        if limit is None:
            limit = self._default_limit
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        if name_pattern is None:
            matches = list(snapshot)
        else:
            needle = name_pattern.casefold()
            matches = [proc for proc in snapshot if needle in proc.name.casefold()]
        return matches[:limit]

    def run(self, snapshot: Sequence[ProcessEntry], query: ProcessQuery) -> SearchResult:
        """Apply a ProcessQuery to a snapshot."""
        return SearchResult(tuple(self.search(snapshot, query.name, query.limit)))
