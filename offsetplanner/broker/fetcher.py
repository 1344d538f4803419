"""
Partition snapshot fetchers.

A fetcher is the only component that talks to the broker. It lists the
partitions of a log and reports, per partition, the earliest offset still
retained and the current end offset. Any broker technology that can
answer those three questions can back the planner.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set, Tuple

from offsetplanner.errors import BrokerUnavailable, InvariantViolation
from offsetplanner.offset import OffsetMapping, PartitionId
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)


class PartitionSnapshotFetcher(ABC):
    """Abstract base class for broker offset lookups."""

    @abstractmethod
    def list_partitions(self, log_name: str) -> Set[PartitionId]:
        """
        List the partitions of a log.

        Args:
            log_name: Log to describe

        Returns:
            Set of partitions

        Raises:
            BrokerUnavailable: If the broker cannot be reached
        """
        pass

    @abstractmethod
    def earliest_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        """
        Get the earliest retained offset per partition.

        Args:
            partitions: Partitions to look up

        Returns:
            Mapping with one entry per requested partition

        Raises:
            BrokerUnavailable: If the broker cannot be reached
        """
        pass

    @abstractmethod
    def end_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        """
        Get the current end offset (next offset to be written) per partition.

        Args:
            partitions: Partitions to look up

        Returns:
            Mapping with one entry per requested partition

        Raises:
            BrokerUnavailable: If the broker cannot be reached
        """
        pass


class InMemorySnapshotFetcher(PartitionSnapshotFetcher):
    """
    Fetcher backed by an in-process table of partition offsets.

    Example:
        fetcher = InMemorySnapshotFetcher({"orders": {0: (0, 100), 1: (20, 80)}})
        fetcher.append("orders", 0, 50)     # partition 0 now ends at 150
        fetcher.truncate("orders", 1, 40)   # retention dropped offsets < 40
    """

    def __init__(
        self,
        logs: Optional[Dict[str, Dict[int, Tuple[int, int]]]] = None,
    ):
        """
        Initialize fetcher.

        Args:
            logs: log name -> partition index -> (earliest offset, end offset)
        """
        self._offsets: Dict[PartitionId, Tuple[int, int]] = {}
        self._logs: Dict[str, Set[PartitionId]] = {}
        self._lock = threading.RLock()
        self._available = True

        for log_name, partitions in (logs or {}).items():
            for index, (earliest, end) in partitions.items():
                self.add_partition(log_name, index, earliest=earliest, end=end)

    def add_partition(
        self,
        log_name: str,
        partition: int,
        earliest: int = 0,
        end: int = 0,
    ) -> PartitionId:
        """
        Add a partition to a log, creating the log if needed.

        Args:
            log_name: Log name
            partition: Partition index
            earliest: Earliest retained offset
            end: Current end offset

        Returns:
            The new partition id
        """
        if earliest > end:
            raise InvariantViolation(
                f"Earliest offset {earliest} is past end offset {end}"
            )

        tp = PartitionId(log_name, partition)

        with self._lock:
            self._offsets[tp] = (earliest, end)
            self._logs.setdefault(log_name, set()).add(tp)

        logger.debug(
            "Added partition",
            log_name=log_name,
            partition=partition,
            earliest=earliest,
            end=end,
        )

        return tp

    def append(self, log_name: str, partition: int, count: int) -> int:
        """
        Advance a partition's end offset as if records were produced.

        Returns:
            New end offset
        """
        tp = PartitionId(log_name, partition)
        with self._lock:
            earliest, end = self._lookup(tp)
            self._offsets[tp] = (earliest, end + count)
            return end + count

    def truncate(self, log_name: str, partition: int, earliest: int) -> None:
        """
        Advance a partition's earliest offset as if retention deleted records.

        Args:
            log_name: Log name
            partition: Partition index
            earliest: New earliest retained offset (capped at the end offset)
        """
        tp = PartitionId(log_name, partition)
        with self._lock:
            _, end = self._lookup(tp)
            self._offsets[tp] = (min(earliest, end), end)

        logger.debug(
            "Truncated partition",
            log_name=log_name,
            partition=partition,
            earliest=earliest,
        )

    def set_available(self, available: bool) -> None:
        """Simulate the broker going away or coming back."""
        self._available = available

    def list_partitions(self, log_name: str) -> Set[PartitionId]:
        self._check_available()
        with self._lock:
            return set(self._logs.get(log_name, set()))

    def earliest_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        self._check_available()
        with self._lock:
            return {tp: self._lookup(tp)[0] for tp in partitions}

    def end_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        self._check_available()
        with self._lock:
            return {tp: self._lookup(tp)[1] for tp in partitions}

    def _lookup(self, tp: PartitionId) -> Tuple[int, int]:
        if tp not in self._offsets:
            raise BrokerUnavailable(f"No leader known for partition {tp}")
        return self._offsets[tp]

    def _check_available(self) -> None:
        if not self._available:
            raise BrokerUnavailable("Broker is not reachable")
