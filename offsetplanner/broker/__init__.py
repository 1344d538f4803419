"""Broker adapters that report partition offsets."""

from offsetplanner.broker.batch_fetch import BatchSnapshotFetcher
from offsetplanner.broker.fetcher import InMemorySnapshotFetcher, PartitionSnapshotFetcher

__all__ = [
    "PartitionSnapshotFetcher",
    "InMemorySnapshotFetcher",
    "BatchSnapshotFetcher",
]
