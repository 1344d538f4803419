"""
Concurrent batched offset lookups.

Splits offset requests for logs with many partitions into fixed-size
batches and runs them on a thread pool. Results are merged and returned
only once every batch has completed, so callers never see a partially
fetched mapping.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Set

from offsetplanner.broker.fetcher import PartitionSnapshotFetcher
from offsetplanner.offset import OffsetMapping, PartitionId
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)


class BatchSnapshotFetcher(PartitionSnapshotFetcher):
    """
    Fetcher decorator that fans out offset lookups in batches.

    Example:
        fetcher = BatchSnapshotFetcher(broker_fetcher, batch_size=50, max_workers=4)
        planner = OffsetPlanner(config, fetcher)
    """

    def __init__(
        self,
        delegate: PartitionSnapshotFetcher,
        batch_size: int = 100,
        max_workers: int = 4,
    ):
        """
        Initialize batch fetcher.

        Args:
            delegate: Fetcher that performs the actual broker calls
            batch_size: Maximum partitions per broker request
            max_workers: Maximum concurrent broker requests
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")

        self.delegate = delegate
        self.batch_size = batch_size
        self.max_workers = max_workers

        logger.info(
            "BatchSnapshotFetcher initialized",
            batch_size=batch_size,
            max_workers=max_workers,
        )

    def list_partitions(self, log_name: str) -> Set[PartitionId]:
        return self.delegate.list_partitions(log_name)

    def earliest_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        return self._fetch_batched(self.delegate.earliest_offsets, partitions, "earliest")

    def end_offsets(self, partitions: Iterable[PartitionId]) -> OffsetMapping:
        return self._fetch_batched(self.delegate.end_offsets, partitions, "end")

    def _batches(self, partitions: Iterable[PartitionId]) -> List[List[PartitionId]]:
        ordered = sorted(partitions)
        return [
            ordered[i:i + self.batch_size]
            for i in range(0, len(ordered), self.batch_size)
        ]

    def _fetch_batched(
        self,
        lookup: Callable[[Iterable[PartitionId]], OffsetMapping],
        partitions: Iterable[PartitionId],
        kind: str,
    ) -> OffsetMapping:
        """
        Run a lookup over all batches and merge the results.

        Args:
            lookup: Delegate method to call per batch
            partitions: Partitions to look up
            kind: Offset kind, for logging

        Returns:
            Merged offset mapping

        Raises:
            BrokerUnavailable: If any batch fails
        """
        batches = self._batches(partitions)

        if len(batches) <= 1:
            return dict(lookup(batches[0])) if batches else {}

        workers = min(self.max_workers, len(batches))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="offset-fetch") as pool:
            futures = [pool.submit(lookup, batch) for batch in batches]

            merged: OffsetMapping = {}
            try:
                for future in futures:
                    merged.update(future.result())
            except Exception as e:
                for future in futures:
                    future.cancel()
                logger.error(
                    "Batched offset fetch failed",
                    kind=kind,
                    batches=len(batches),
                    error=str(e),
                )
                raise

        logger.debug(
            "Fetched offsets in batches",
            kind=kind,
            batches=len(batches),
            partitions=len(merged),
        )

        return merged
