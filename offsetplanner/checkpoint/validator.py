"""
Checkpoint validation against broker retention.

A checkpoint goes stale when retention deletes records it still points
at. If any partition is stale the whole checkpoint is discarded and all
partitions restart from their earliest retained offsets, which keeps
partitions consistent with each other in time at the cost of a larger
one-off re-read.
"""

from enum import Enum
from typing import Iterable, Mapping, Union

from offsetplanner.broker.fetcher import PartitionSnapshotFetcher
from offsetplanner.offset import OffsetMapping, PartitionId
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)


class NewPartitionPolicy(str, Enum):
    """Starting point for partitions the checkpoint has never seen."""
    ZERO = "zero"          # Start at offset 0
    EARLIEST = "earliest"  # Start at the earliest retained offset

    @classmethod
    def parse(cls, value: Union[str, "NewPartitionPolicy"]) -> "NewPartitionPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"New partition offsets must be 'zero' or 'earliest', got {value!r}"
            ) from None


def validate(
    checkpoint_offsets: Mapping[PartitionId, int],
    fetcher: PartitionSnapshotFetcher,
    partitions: Iterable[PartitionId],
    new_partition_policy: Union[str, NewPartitionPolicy] = NewPartitionPolicy.ZERO,
) -> OffsetMapping:
    """
    Check a checkpoint against the earliest retained offsets.

    Args:
        checkpoint_offsets: Offsets decoded from the previous checkpoint
        fetcher: Broker offset fetcher
        partitions: Partitions currently in the log
        new_partition_policy: Where partitions absent from the checkpoint start

    Returns:
        The checkpoint offsets for current partitions if none is stale,
        otherwise the earliest offsets of all partitions

    Raises:
        BrokerUnavailable: If earliest offsets cannot be fetched
    """
    new_partition_policy = NewPartitionPolicy.parse(new_partition_policy)
    partitions = set(partitions)
    earliest = fetcher.earliest_offsets(partitions)

    stale = sorted(
        tp for tp, offset in checkpoint_offsets.items()
        if tp in earliest and offset < earliest[tp]
    )

    if stale:
        logger.warning(
            "Checkpoint is stale, resetting all partitions to earliest",
            stale_partitions=[str(tp) for tp in stale],
            partitions=len(partitions),
        )
        return dict(earliest)

    offsets = {
        tp: offset for tp, offset in checkpoint_offsets.items() if tp in partitions
    }

    dropped = sorted(set(checkpoint_offsets) - partitions)
    if dropped:
        logger.warning(
            "Dropping checkpointed partitions no longer in log",
            partitions=[str(tp) for tp in dropped],
        )

    if new_partition_policy == NewPartitionPolicy.EARLIEST:
        for tp in partitions - set(offsets):
            offsets[tp] = earliest[tp]

            logger.info(
                "Starting new partition at earliest offset",
                log_name=tp.log_name,
                partition=tp.partition,
                offset=earliest[tp],
            )

    return offsets
