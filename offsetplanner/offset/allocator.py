"""
Offset range allocation under a per-cycle event budget.

Given where each partition was left off and where it currently ends,
the allocator hands out the budget in round-robin passes. Each pass
splits the remaining budget evenly across partitions that still have
unread records, so partitions that drain early free up budget for the
ones still growing instead of starving them.

Example: from {p0: 100, p1: 100}, to {p0: 150, p1: 500}, budget 300.
  Pass 1: share = ceil(300 / 2) = 150
    p0 -> 150 (drained, 50 used), p1 -> 250 (150 used)
  Pass 2: share = ceil(100 / 1) = 100
    p1 -> 350
  Result: [p0: 100->150, p1: 100->350], 300 events.
"""

from typing import Dict, List, Mapping, Set

from offsetplanner.errors import InvariantViolation
from offsetplanner.offset import OffsetRange, PartitionId
from offsetplanner.utils.logging import get_logger

logger = get_logger(__name__)


def _check_preconditions(
    from_offsets: Mapping[PartitionId, int],
    to_offsets: Mapping[PartitionId, int],
    event_budget: int,
) -> None:
    if event_budget < 0:
        raise InvariantViolation(f"Event budget must not be negative, got {event_budget}")

    if not to_offsets:
        raise InvariantViolation("Cannot allocate ranges without any target offsets")

    for tp, to_offset in to_offsets.items():
        from_offset = from_offsets.get(tp, 0)
        if from_offset > to_offset:
            raise InvariantViolation(
                f"From offset {from_offset} is past to offset {to_offset} for {tp}"
            )


def allocate(
    from_offsets: Mapping[PartitionId, int],
    to_offsets: Mapping[PartitionId, int],
    event_budget: int,
) -> List[OffsetRange]:
    """
    Compute the offset ranges to read this cycle.

    Partitions missing from from_offsets start at offset 0. Partitions in
    from_offsets but not in to_offsets are ignored.

    Args:
        from_offsets: Offsets where the previous cycle left off
        to_offsets: Current end offset of every partition to read
        event_budget: Maximum number of events to allocate

    Returns:
        One range per partition in to_offsets, sorted by partition index

    Raises:
        InvariantViolation: If the budget is negative, to_offsets is empty,
            or a from offset lies past its to offset
    """
    _check_preconditions(from_offsets, to_offsets, event_budget)

    partitions = sorted(to_offsets, key=lambda tp: (tp.partition, tp.log_name))
    starts: Dict[PartitionId, int] = {tp: from_offsets.get(tp, 0) for tp in partitions}
    untils: Dict[PartitionId, int] = dict(starts)

    exhausted: Set[PartitionId] = set()
    allocated = 0
    passes = 0

    while allocated < event_budget and len(exhausted) < len(partitions):
        remaining = event_budget - allocated
        active = len(partitions) - len(exhausted)
        share = -(-remaining // active)
        passes += 1

        for tp in partitions:
            if tp in exhausted:
                continue

            cap = to_offsets[tp]
            candidate = min(cap, untils[tp] + share, untils[tp] + event_budget - allocated)
            if candidate == cap:
                exhausted.add(tp)

            allocated += candidate - untils[tp]
            untils[tp] = candidate

        logger.debug(
            "Allocation pass complete",
            pass_number=passes,
            share=share,
            allocated=allocated,
            exhausted=len(exhausted),
        )

    return [OffsetRange(tp, starts[tp], untils[tp]) for tp in partitions]
