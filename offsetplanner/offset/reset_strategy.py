"""
Offset reset strategies for logs without a usable checkpoint.

When there is no checkpoint to resume from, these strategies determine
where in each partition the first cycle starts reading.
"""

from enum import Enum
from typing import Iterable, Union

from offsetplanner.broker.fetcher import PartitionSnapshotFetcher
from offsetplanner.errors import UnsupportedResetStrategy
from offsetplanner.offset import OffsetMapping, PartitionId
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)


class ResetStrategy(str, Enum):
    """
    Strategies for choosing starting offsets when no checkpoint exists.
    """
    EARLIEST = "earliest"  # Start from the earliest retained offset
    LATEST = "latest"      # Start from the current log end

    @classmethod
    def parse(cls, value: Union[str, "ResetStrategy"]) -> "ResetStrategy":
        """
        Parse a configured strategy name.

        Accepts earliest/latest and the smallest/largest aliases, in any case.

        Args:
            value: Strategy name or enum member

        Returns:
            Matching strategy

        Raises:
            UnsupportedResetStrategy: If the name is not recognised
        """
        if isinstance(value, cls):
            return value

        name = str(value).strip().lower()
        strategy = _ALIASES.get(name)
        if strategy is None:
            raise UnsupportedResetStrategy(
                f"Auto reset value must be one of 'earliest', 'latest', "
                f"'smallest' or 'largest', got {value!r}"
            )
        return strategy


_ALIASES = {
    "earliest": ResetStrategy.EARLIEST,
    "smallest": ResetStrategy.EARLIEST,
    "latest": ResetStrategy.LATEST,
    "largest": ResetStrategy.LATEST,
}

DEFAULT_RESET_STRATEGY = ResetStrategy.LATEST


def resolve(
    strategy: Union[str, ResetStrategy],
    fetcher: PartitionSnapshotFetcher,
    partitions: Iterable[PartitionId],
) -> OffsetMapping:
    """
    Get starting offsets for partitions based on a reset strategy.

    Args:
        strategy: Reset strategy
        fetcher: Broker offset fetcher
        partitions: Partitions to start

    Returns:
        Starting offset per partition

    Raises:
        UnsupportedResetStrategy: If the strategy is not recognised
        BrokerUnavailable: If offsets cannot be fetched
    """
    strategy = ResetStrategy.parse(strategy)
    partitions = set(partitions)

    if strategy == ResetStrategy.EARLIEST:
        offsets = fetcher.earliest_offsets(partitions)
    elif strategy == ResetStrategy.LATEST:
        offsets = fetcher.end_offsets(partitions)
    else:
        raise UnsupportedResetStrategy(f"Unknown offset reset strategy: {strategy}")

    logger.info(
        "Reset offsets from strategy",
        strategy=strategy.value,
        partitions=len(partitions),
    )

    return offsets
