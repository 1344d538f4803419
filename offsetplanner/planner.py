"""
Per-cycle offset planning.

Ties the planner components together. Each ingestion cycle:
- Decodes the previous checkpoint
- Lists the log's partitions
- Picks starting offsets (reset strategy on first run, validated
  checkpoint otherwise)
- Fetches current end offsets
- Allocates the event budget across partitions
- Encodes the new checkpoint from the allocated until offsets

Planning has no side effects besides broker reads. Persisting the new
checkpoint is the caller's job, and must only happen after the cycle's
records have been committed downstream.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from offsetplanner.broker.fetcher import PartitionSnapshotFetcher
from offsetplanner.checkpoint.codec import EMPTY_CHECKPOINT, decode, encode
from offsetplanner.checkpoint.validator import NewPartitionPolicy, validate
from offsetplanner.errors import MalformedCheckpoint, OffsetPlannerError, RetryableError
from offsetplanner.offset import OffsetRange, total_new_messages
from offsetplanner.offset.allocator import allocate
from offsetplanner.offset.reset_strategy import DEFAULT_RESET_STRATEGY, ResetStrategy, resolve
from offsetplanner.utils.config import Config
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_EVENTS_TO_READ = 1_000_000


def plan_next_cycle(
    log_name: str,
    previous_checkpoint: Optional[str],
    event_budget: int,
    reset_strategy: Union[str, ResetStrategy],
    fetcher: PartitionSnapshotFetcher,
    new_partition_policy: Union[str, NewPartitionPolicy] = NewPartitionPolicy.ZERO,
) -> Tuple[List[OffsetRange], str]:
    """
    Compute the ranges to read this cycle and the checkpoint that follows them.

    Args:
        log_name: Log to plan for
        previous_checkpoint: Checkpoint string from the last cycle ("" or None if none)
        event_budget: Maximum events to allocate
        reset_strategy: Where to start when there is no checkpoint
        fetcher: Broker offset fetcher
        new_partition_policy: Where partitions absent from the checkpoint start

    Returns:
        (ranges sorted by partition index, new checkpoint string). If the log
        has no partitions, ranges is empty and the checkpoint is returned as given.

    Raises:
        MalformedCheckpoint: If the checkpoint cannot be decoded or is for another log
        BrokerUnavailable: If the broker cannot be reached
        UnsupportedResetStrategy: If the reset strategy is not recognised
        InvariantViolation: If the inputs break an allocator precondition
    """
    previous_checkpoint = previous_checkpoint or EMPTY_CHECKPOINT
    reset_strategy = ResetStrategy.parse(reset_strategy)

    checkpoint_log, checkpoint_offsets = decode(previous_checkpoint)
    if checkpoint_offsets and checkpoint_log != log_name:
        raise MalformedCheckpoint(
            f"Checkpoint belongs to log {checkpoint_log}, not {log_name}",
            previous_checkpoint,
        )

    partitions = fetcher.list_partitions(log_name)
    if not partitions:
        logger.warning("Log has no partitions, nothing to plan", log_name=log_name)
        return [], previous_checkpoint

    if checkpoint_offsets:
        from_offsets = validate(checkpoint_offsets, fetcher, partitions, new_partition_policy)
    else:
        logger.info(
            "No checkpoint found, resetting offsets",
            log_name=log_name,
            strategy=reset_strategy.value,
        )
        from_offsets = resolve(reset_strategy, fetcher, partitions)

    to_offsets = fetcher.end_offsets(partitions)

    ranges = allocate(from_offsets, to_offsets, event_budget)
    new_checkpoint = encode(log_name, {r.partition: r.until_offset for r in ranges})

    logger.info(
        "Planned ingestion cycle",
        log_name=log_name,
        partitions=len(ranges),
        event_budget=event_budget,
        total_events=total_new_messages(ranges),
    )

    return ranges, new_checkpoint


@dataclass
class PlannerConfig:
    """
    Configuration for an offset planner.

    Attributes:
        log_name: Log to ingest from
        max_events_per_cycle: Upper bound on events per cycle
        auto_offset_reset: Where to start when there is no checkpoint
        new_partition_policy: Where partitions absent from the checkpoint start
        broker_params: Broker client properties carried for the caller that
            builds the fetcher; the planner itself never reads them
    """
    log_name: str
    max_events_per_cycle: int = DEFAULT_MAX_EVENTS_TO_READ
    auto_offset_reset: Union[str, ResetStrategy] = DEFAULT_RESET_STRATEGY
    new_partition_policy: Union[str, NewPartitionPolicy] = NewPartitionPolicy.ZERO
    broker_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.log_name:
            raise ValueError("log_name is required")
        if self.max_events_per_cycle < 0:
            raise ValueError(
                f"max_events_per_cycle must not be negative, got {self.max_events_per_cycle}"
            )
        # Strategy errors are configuration errors, surface them at startup.
        self.auto_offset_reset = ResetStrategy.parse(self.auto_offset_reset)
        self.new_partition_policy = NewPartitionPolicy.parse(self.new_partition_policy)

    @classmethod
    def from_config(cls, config: Config) -> "PlannerConfig":
        """
        Build planner configuration from the config layer.

        Args:
            config: Loaded configuration

        Returns:
            Planner configuration

        Raises:
            ValueError: If source.log_name is missing
            UnsupportedResetStrategy: If source.auto_offset_reset is invalid
        """
        log_name = config.get("source.log_name")
        if not log_name:
            raise ValueError("Missing required configuration: source.log_name")

        return cls(
            log_name=log_name,
            max_events_per_cycle=int(
                config.get("source.max_events_per_cycle", DEFAULT_MAX_EVENTS_TO_READ)
            ),
            auto_offset_reset=config.get("source.auto_offset_reset", DEFAULT_RESET_STRATEGY),
            new_partition_policy=config.get(
                "source.new_partition_offsets", NewPartitionPolicy.ZERO
            ),
            broker_params=dict(config.get("broker.params") or {}),
        )


@dataclass
class CyclePlan:
    """
    Result of planning one ingestion cycle.

    Attributes:
        ranges: Ranges to read, sorted by partition index
        checkpoint: Checkpoint to persist once the ranges are committed
        previous_checkpoint: Checkpoint the plan started from
    """
    ranges: List[OffsetRange]
    checkpoint: str
    previous_checkpoint: str = EMPTY_CHECKPOINT

    @property
    def total_events(self) -> int:
        return total_new_messages(self.ranges)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to read; callers may skip the cycle."""
        return self.total_events == 0


class OffsetPlanner:
    """
    Plans ingestion cycles for one log.

    Example:
        planner = OffsetPlanner(PlannerConfig(log_name="orders"), fetcher)

        checkpoint = store.load()
        plan = planner.plan(checkpoint, source_limit=50_000)
        if not plan.is_empty:
            ingest(plan.ranges)
            store.save(plan.checkpoint)
    """

    def __init__(self, config: PlannerConfig, fetcher: PartitionSnapshotFetcher):
        """
        Initialize planner.

        Args:
            config: Planner configuration
            fetcher: Broker offset fetcher
        """
        self.config = config
        self.fetcher = fetcher

        logger.info(
            "OffsetPlanner initialized",
            log_name=config.log_name,
            max_events_per_cycle=config.max_events_per_cycle,
            auto_offset_reset=config.auto_offset_reset.value,
            new_partition_policy=config.new_partition_policy.value,
        )

    @property
    def broker_params(self) -> Dict[str, Any]:
        """Copy of the configured broker client properties."""
        return dict(self.config.broker_params)

    def event_budget(self, source_limit: Optional[int] = None) -> int:
        """
        Get the budget for a cycle.

        Args:
            source_limit: Caller's limit for this cycle (None for no limit)

        Returns:
            The smaller of the source limit and max_events_per_cycle
        """
        if source_limit is None:
            return self.config.max_events_per_cycle
        return min(self.config.max_events_per_cycle, source_limit)

    def plan(
        self,
        previous_checkpoint: Optional[str] = None,
        source_limit: Optional[int] = None,
    ) -> CyclePlan:
        """
        Plan the next ingestion cycle.

        Args:
            previous_checkpoint: Checkpoint string from the last committed cycle
            source_limit: Optional per-cycle event limit

        Returns:
            Cycle plan

        Raises:
            OffsetPlannerError: On any planning failure; retry the cycle with
                the same checkpoint if it is a RetryableError
        """
        previous_checkpoint = previous_checkpoint or EMPTY_CHECKPOINT
        budget = self.event_budget(source_limit)

        with structlog.contextvars.bound_contextvars(log_name=self.config.log_name):
            try:
                ranges, checkpoint = plan_next_cycle(
                    self.config.log_name,
                    previous_checkpoint,
                    budget,
                    self.config.auto_offset_reset,
                    self.fetcher,
                    self.config.new_partition_policy,
                )
            except OffsetPlannerError as e:
                logger.error(
                    "Planning cycle failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    retryable=isinstance(e, RetryableError),
                )
                raise

        return CyclePlan(
            ranges=ranges,
            checkpoint=checkpoint,
            previous_checkpoint=previous_checkpoint,
        )
