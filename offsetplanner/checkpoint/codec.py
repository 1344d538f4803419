"""
Checkpoint string encoding.

A checkpoint records, for one log, the offset each partition should be
read from next. It is persisted as a single string:

    <log_name>,<partition>:<offset>,<partition>:<offset>,...

for example ``orders,0:150,1:350``. The empty string means "no
checkpoint". The format is persisted by external stores and must stay
stable.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Tuple

from offsetplanner.errors import InvariantViolation, MalformedCheckpoint
from offsetplanner.offset import MAX_PARTITION, OffsetMapping, OffsetRange, PartitionId, is_int64

EMPTY_CHECKPOINT = ""

FIELD_SEPARATOR = ","
OFFSET_SEPARATOR = ":"

_INTEGER = re.compile(r"[+-]?[0-9]{1,20}")


def encode(log_name: str, offsets: Mapping[PartitionId, int]) -> str:
    """
    Encode a log's offsets as a checkpoint string.

    Partitions are written in ascending index order.

    Args:
        log_name: Log the offsets belong to
        offsets: Offset per partition (must not be empty)

    Returns:
        Checkpoint string

    Raises:
        InvariantViolation: If offsets is empty, mixes logs, or the log
            name cannot be represented
    """
    if not log_name or FIELD_SEPARATOR in log_name:
        raise InvariantViolation(f"Log name {log_name!r} cannot be written to a checkpoint")

    if not offsets:
        raise InvariantViolation(f"Cannot encode an empty checkpoint for log {log_name}")

    parts = [log_name]
    for tp in sorted(offsets, key=lambda p: p.partition):
        if tp.log_name != log_name:
            raise InvariantViolation(
                f"Partition {tp} does not belong to log {log_name}; "
                f"multi-log checkpoints are not supported"
            )
        offset = offsets[tp]
        if not is_int64(offset):
            raise InvariantViolation(f"Offset {offset} for {tp} is outside the 64-bit range")
        parts.append(f"{tp.partition}{OFFSET_SEPARATOR}{offset}")

    return FIELD_SEPARATOR.join(parts)


def _parse_int(token: str, what: str, checkpoint: str) -> int:
    if not _INTEGER.fullmatch(token):
        raise MalformedCheckpoint(f"Invalid {what} {token!r} in checkpoint", checkpoint)
    return int(token)


def decode(checkpoint: str) -> Tuple[str, OffsetMapping]:
    """
    Decode a checkpoint string.

    Args:
        checkpoint: Checkpoint string

    Returns:
        (log name, offset per partition); ("", {}) for the empty checkpoint

    Raises:
        MalformedCheckpoint: If the string is not a valid checkpoint
    """
    if checkpoint is None:
        raise MalformedCheckpoint("Checkpoint must be a string, got None")

    if checkpoint == EMPTY_CHECKPOINT:
        return EMPTY_CHECKPOINT, {}

    tokens = checkpoint.split(FIELD_SEPARATOR)
    log_name = tokens[0]

    if not log_name:
        raise MalformedCheckpoint("Checkpoint has no log name", checkpoint)

    if len(tokens) == 1:
        raise MalformedCheckpoint(f"Checkpoint for log {log_name} has no partitions", checkpoint)

    offsets: Dict[PartitionId, int] = {}
    for token in tokens[1:]:
        pieces = token.split(OFFSET_SEPARATOR)
        if len(pieces) != 2:
            raise MalformedCheckpoint(f"Invalid partition entry {token!r} in checkpoint", checkpoint)

        partition = _parse_int(pieces[0], "partition index", checkpoint)
        offset = _parse_int(pieces[1], "offset", checkpoint)

        if not 0 <= partition <= MAX_PARTITION:
            raise MalformedCheckpoint(f"Partition index {partition} out of range", checkpoint)
        if not is_int64(offset):
            raise MalformedCheckpoint(f"Offset {offset} is outside the 64-bit range", checkpoint)

        tp = PartitionId(log_name, partition)
        if tp in offsets:
            raise MalformedCheckpoint(f"Partition {partition} appears twice in checkpoint", checkpoint)
        offsets[tp] = offset

    return log_name, offsets


@dataclass(frozen=True)
class Checkpoint:
    """
    Snapshot of the next offset to read for every partition of a log.

    Attributes:
        log_name: Log name ("" for the empty checkpoint)
        offsets: Offset per partition
    """
    log_name: str = EMPTY_CHECKPOINT
    offsets: OffsetMapping = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.offsets

    @classmethod
    def from_string(cls, checkpoint: str) -> "Checkpoint":
        log_name, offsets = decode(checkpoint)
        return cls(log_name, offsets)

    @classmethod
    def from_ranges(cls, ranges: Iterable[OffsetRange]) -> "Checkpoint":
        """
        Build the checkpoint that resumes after a set of ranges.

        Args:
            ranges: Ranges of one log (at least one)

        Returns:
            Checkpoint holding each range's until offset
        """
        ranges = list(ranges)
        if not ranges:
            raise InvariantViolation("Cannot build a checkpoint from an empty plan")
        return cls(ranges[0].log_name, {r.partition: r.until_offset for r in ranges})

    def to_string(self) -> str:
        if self.is_empty:
            return EMPTY_CHECKPOINT
        return encode(self.log_name, self.offsets)

    def __str__(self) -> str:
        return self.to_string()
