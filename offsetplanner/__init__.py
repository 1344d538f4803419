"""
offsetplanner - checkpoint-driven offset range planning for log ingestion.

Decides, on every ingestion cycle, which sub-range of each partition of
an append-only log to read next, with:
- A stable checkpoint string format for resuming after crashes
- First-run bootstrapping from the earliest or latest offsets
- Retention-aware checkpoint validation
- Fair allocation of a per-cycle event budget across partitions
"""

__version__ = "0.1.0"

from offsetplanner.broker import BatchSnapshotFetcher, InMemorySnapshotFetcher, PartitionSnapshotFetcher
from offsetplanner.checkpoint import Checkpoint, NewPartitionPolicy, decode, encode, validate
from offsetplanner.errors import (
    BrokerUnavailable,
    InvariantViolation,
    MalformedCheckpoint,
    NonRetryableError,
    OffsetPlannerError,
    RetryableError,
    UnsupportedResetStrategy,
)
from offsetplanner.offset import OffsetRange, PartitionId, total_new_messages
from offsetplanner.offset.allocator import allocate
from offsetplanner.offset.reset_strategy import ResetStrategy, resolve
from offsetplanner.planner import CyclePlan, OffsetPlanner, PlannerConfig, plan_next_cycle

__all__ = [
    "PartitionSnapshotFetcher",
    "InMemorySnapshotFetcher",
    "BatchSnapshotFetcher",
    "Checkpoint",
    "NewPartitionPolicy",
    "encode",
    "decode",
    "validate",
    "OffsetPlannerError",
    "RetryableError",
    "NonRetryableError",
    "MalformedCheckpoint",
    "BrokerUnavailable",
    "UnsupportedResetStrategy",
    "InvariantViolation",
    "PartitionId",
    "OffsetRange",
    "total_new_messages",
    "allocate",
    "ResetStrategy",
    "resolve",
    "PlannerConfig",
    "OffsetPlanner",
    "CyclePlan",
    "plan_next_cycle",
]
