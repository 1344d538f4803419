"""Tests for offset range allocation."""

import random

import pytest

from offsetplanner.errors import InvariantViolation
from offsetplanner.offset import PartitionId, total_new_messages
from offsetplanner.offset.allocator import allocate


def tp(partition, log_name="orders"):
    return PartitionId(log_name, partition)


def untils(ranges):
    return [r.until_offset for r in ranges]


class TestAllocateBudget:
    """Test budget distribution across partitions."""

    def test_drained_partition_frees_budget(self):
        """Test budget left by a drained partition goes to the others."""
        from_offsets = {tp(0): 100, tp(1): 100}
        to_offsets = {tp(0): 150, tp(1): 500}

        ranges = allocate(from_offsets, to_offsets, 300)

        assert [(r.partition_index, r.from_offset, r.until_offset) for r in ranges] == [
            (0, 100, 150),
            (1, 100, 350),
        ]
        assert total_new_messages(ranges) == 300

    def test_new_partition_starts_at_zero(self):
        """Test partitions missing from the from offsets start at 0."""
        ranges = allocate({}, {tp(0): 1000}, 100)

        assert len(ranges) == 1
        assert ranges[0].from_offset == 0
        assert ranges[0].until_offset == 100

    def test_single_partition_gets_whole_budget(self):
        """Test a single partition with a large backlog takes the full budget."""
        ranges = allocate({tp(0): 10}, {tp(0): 10_000}, 250)

        assert ranges[0].from_offset == 10
        assert ranges[0].until_offset == 260

    def test_full_drain_under_budget(self):
        """Test every partition is read to its end when the backlog fits."""
        from_offsets = {tp(0): 0, tp(1): 10}
        to_offsets = {tp(0): 5, tp(1): 20}

        ranges = allocate(from_offsets, to_offsets, 100)

        assert untils(ranges) == [5, 20]
        assert total_new_messages(ranges) == 15

    def test_share_rounding_never_exceeds_budget(self):
        """Test rounded-up shares are clamped to the budget."""
        to_offsets = {tp(0): 1000, tp(1): 1000, tp(2): 1000}

        ranges = allocate({}, to_offsets, 10)

        assert untils(ranges) == [4, 4, 2]
        assert total_new_messages(ranges) == 10

    def test_redistribution_over_passes(self):
        """Test small partitions drain and the remainder goes to the large one."""
        to_offsets = {tp(0): 1, tp(1): 1, tp(2): 1000}

        ranges = allocate({}, to_offsets, 100)

        assert untils(ranges) == [1, 1, 98]

    def test_zero_budget(self):
        """Test a zero budget yields empty ranges."""
        from_offsets = {tp(0): 5, tp(1): 7}
        to_offsets = {tp(0): 50, tp(1): 70}

        ranges = allocate(from_offsets, to_offsets, 0)

        assert [(r.from_offset, r.until_offset) for r in ranges] == [(5, 5), (7, 7)]

    def test_already_drained_partitions(self):
        """Test partitions with nothing new produce empty ranges."""
        from_offsets = {tp(0): 50, tp(1): 70}
        to_offsets = {tp(0): 50, tp(1): 70}

        ranges = allocate(from_offsets, to_offsets, 100)

        assert all(r.count == 0 for r in ranges)


class TestAllocateShape:
    """Test the shape of allocator output."""

    def test_sorted_by_partition_index(self):
        """Test ranges come back in partition index order."""
        to_offsets = {tp(2): 10, tp(0): 10, tp(1): 10}

        ranges = allocate({}, to_offsets, 30)

        assert [r.partition_index for r in ranges] == [0, 1, 2]

    def test_ignores_partitions_not_in_to_offsets(self):
        """Test from offsets for unknown partitions are ignored."""
        ranges = allocate({tp(0): 1, tp(9): 5}, {tp(0): 10}, 100)

        assert [r.partition for r in ranges] == [tp(0)]

    def test_deterministic(self):
        """Test identical inputs give identical plans."""
        from_offsets = {tp(i): i * 3 for i in range(8)}
        to_offsets = {tp(i): 100 + i * 17 for i in range(8)}

        first = allocate(from_offsets, to_offsets, 333)
        second = allocate(dict(reversed(list(from_offsets.items()))), to_offsets, 333)

        assert first == second


class TestAllocatePreconditions:
    """Test allocator precondition checks."""

    def test_negative_budget(self):
        """Test negative budget is rejected."""
        with pytest.raises(InvariantViolation, match="must not be negative"):
            allocate({}, {tp(0): 10}, -1)

    def test_empty_to_offsets(self):
        """Test empty target offsets are rejected."""
        with pytest.raises(InvariantViolation, match="without any target offsets"):
            allocate({}, {}, 10)

    def test_from_past_to(self):
        """Test from offset past the to offset is rejected."""
        with pytest.raises(InvariantViolation, match="past to offset"):
            allocate({tp(0): 20}, {tp(0): 10}, 10)


class TestAllocateProperties:
    """Check allocator invariants over many generated inputs."""

    def test_invariants_hold(self):
        """Test bounds, budget and drain guarantees on random inputs."""
        rng = random.Random(1234)

        for _ in range(500):
            count = rng.randint(1, 12)
            from_offsets = {}
            to_offsets = {}
            for i in range(count):
                start = rng.randint(0, 10_000)
                to_offsets[tp(i)] = start + rng.choice([0, 1, rng.randint(0, 5_000)])
                # Some partitions are new and start at 0.
                if rng.random() < 0.8:
                    from_offsets[tp(i)] = start

            budget = rng.randint(0, 20_000)
            ranges = allocate(from_offsets, to_offsets, budget)

            natural = sum(to_offsets[p] - from_offsets.get(p, 0) for p in to_offsets)
            total = total_new_messages(ranges)

            assert len(ranges) == count
            for r in ranges:
                assert r.from_offset == from_offsets.get(r.partition, 0)
                assert r.from_offset <= r.until_offset <= to_offsets[r.partition]

            if natural <= budget:
                assert all(r.until_offset == to_offsets[r.partition] for r in ranges)
                assert total == natural
            else:
                assert total == budget
