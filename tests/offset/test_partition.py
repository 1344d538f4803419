"""Tests for partition and offset range types."""

import pytest

from offsetplanner.errors import InvariantViolation
from offsetplanner.offset import INT64_MAX, OffsetRange, PartitionId, total_new_messages


class TestPartitionId:
    """Test PartitionId."""

    def test_creation(self):
        """Test creating a partition id."""
        tp = PartitionId("orders", 3)

        assert tp.log_name == "orders"
        assert tp.partition == 3
        assert str(tp) == "orders-3"

    def test_hashable(self):
        """Test can be used as dict key."""
        d = {PartitionId("orders", 0): 10}

        assert d[PartitionId("orders", 0)] == 10
        assert PartitionId("orders", 1) not in d

    @pytest.mark.parametrize("partition", [-1, 2 ** 31])
    def test_partition_index_bounds(self, partition):
        """Test partition index must be a non-negative 32-bit integer."""
        with pytest.raises(InvariantViolation, match="out of range"):
            PartitionId("orders", partition)

    def test_ordering(self):
        """Test partitions sort by log then index."""
        partitions = [PartitionId("b", 0), PartitionId("a", 2), PartitionId("a", 1)]

        assert sorted(partitions) == [
            PartitionId("a", 1),
            PartitionId("a", 2),
            PartitionId("b", 0),
        ]


class TestOffsetRange:
    """Test OffsetRange."""

    def test_count(self):
        """Test count is until minus from."""
        r = OffsetRange(PartitionId("orders", 1), 100, 350)

        assert r.count == 250
        assert r.log_name == "orders"
        assert r.partition_index == 1
        assert str(r) == "orders-1:100->350"

    def test_empty_range(self):
        """Test from equal to until is allowed."""
        r = OffsetRange(PartitionId("orders", 0), 5, 5)

        assert r.count == 0

    def test_from_after_until(self):
        """Test inverted range is rejected."""
        with pytest.raises(InvariantViolation, match="starts after it ends"):
            OffsetRange(PartitionId("orders", 0), 10, 9)

    def test_offset_out_of_range(self):
        """Test offsets must fit in 64 bits."""
        with pytest.raises(InvariantViolation, match="64-bit"):
            OffsetRange(PartitionId("orders", 0), 0, INT64_MAX + 1)

    def test_total_new_messages(self):
        """Test summing a plan."""
        ranges = [
            OffsetRange(PartitionId("orders", 0), 0, 10),
            OffsetRange(PartitionId("orders", 1), 5, 25),
        ]

        assert total_new_messages(ranges) == 30
        assert total_new_messages([]) == 0
