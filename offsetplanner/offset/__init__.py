"""Partition and offset range types shared by the planner components."""

from dataclasses import dataclass
from typing import Dict, Iterable

from offsetplanner.errors import InvariantViolation

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
MAX_PARTITION = 2 ** 31 - 1


def is_int64(value: int) -> bool:
    """Check that a value fits in a signed 64-bit offset."""
    return INT64_MIN <= value <= INT64_MAX


@dataclass(frozen=True, order=True)
class PartitionId:
    """
    Identity of one ordered sub-log.

    Attributes:
        log_name: Name of the partitioned log
        partition: Partition index within the log
    """
    log_name: str
    partition: int

    def __post_init__(self):
        if not 0 <= self.partition <= MAX_PARTITION:
            raise InvariantViolation(
                f"Partition index {self.partition} of log {self.log_name} is out of range"
            )

    def __str__(self) -> str:
        return f"{self.log_name}-{self.partition}"

    def __repr__(self) -> str:
        return f"PartitionId(log_name='{self.log_name}', partition={self.partition})"


OffsetMapping = Dict[PartitionId, int]


@dataclass(frozen=True)
class OffsetRange:
    """
    Records to read from one partition, from inclusive, until exclusive.

    Attributes:
        partition: Partition the range belongs to
        from_offset: First offset to read
        until_offset: Offset one past the last record to read
    """
    partition: PartitionId
    from_offset: int
    until_offset: int

    def __post_init__(self):
        if self.from_offset > self.until_offset:
            raise InvariantViolation(
                f"Range for {self.partition} starts after it ends: "
                f"{self.from_offset} > {self.until_offset}"
            )
        if not (is_int64(self.from_offset) and is_int64(self.until_offset)):
            raise InvariantViolation(
                f"Range for {self.partition} has offsets outside the 64-bit range"
            )

    @property
    def log_name(self) -> str:
        return self.partition.log_name

    @property
    def partition_index(self) -> int:
        return self.partition.partition

    @property
    def count(self) -> int:
        """Number of records the range yields."""
        return self.until_offset - self.from_offset

    def __str__(self) -> str:
        return f"{self.partition}:{self.from_offset}->{self.until_offset}"


def total_new_messages(ranges: Iterable[OffsetRange]) -> int:
    """
    Count the records covered by a plan.

    Args:
        ranges: Offset ranges

    Returns:
        Sum of the range counts
    """
    return sum(r.count for r in ranges)


__all__ = [
    "INT64_MIN",
    "INT64_MAX",
    "MAX_PARTITION",
    "is_int64",
    "PartitionId",
    "OffsetMapping",
    "OffsetRange",
    "total_new_messages",
]
