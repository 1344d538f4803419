"""Tests for checkpoint validation."""

import pytest

from offsetplanner.broker.fetcher import InMemorySnapshotFetcher
from offsetplanner.checkpoint.validator import NewPartitionPolicy, validate
from offsetplanner.errors import BrokerUnavailable
from offsetplanner.offset import PartitionId


def tp(partition, log_name="orders"):
    return PartitionId(log_name, partition)


@pytest.fixture
def fetcher():
    return InMemorySnapshotFetcher({"orders": {0: (50, 1000), 1: (100, 1000)}})


class TestValidate:
    """Test validate()."""

    def test_valid_checkpoint_unchanged(self, fetcher):
        """Test a checkpoint within retention is returned as is."""
        checkpoint = {tp(0): 60, tp(1): 400}

        offsets = validate(checkpoint, fetcher, fetcher.list_partitions("orders"))

        assert offsets == checkpoint

    def test_offset_at_earliest_is_valid(self, fetcher):
        """Test a checkpoint exactly at the earliest offset is not stale."""
        checkpoint = {tp(0): 50, tp(1): 100}

        offsets = validate(checkpoint, fetcher, fetcher.list_partitions("orders"))

        assert offsets == checkpoint

    def test_idempotent(self, fetcher):
        """Test validating twice gives the same result."""
        partitions = fetcher.list_partitions("orders")
        checkpoint = {tp(0): 70, tp(1): 900}

        once = validate(checkpoint, fetcher, partitions)
        twice = validate(once, fetcher, partitions)

        assert once == twice == checkpoint

    def test_stale_partition_resets_all(self, fetcher):
        """Test one stale partition resets every partition to earliest."""
        checkpoint = {tp(0): 10, tp(1): 400}

        offsets = validate(checkpoint, fetcher, fetcher.list_partitions("orders"))

        assert offsets == {tp(0): 50, tp(1): 100}

    def test_stale_after_retention(self, fetcher):
        """Test a checkpoint goes stale once retention passes it."""
        partitions = fetcher.list_partitions("orders")
        checkpoint = {tp(0): 200, tp(1): 200}

        assert validate(checkpoint, fetcher, partitions) == checkpoint

        fetcher.truncate("orders", 1, 300)

        assert validate(checkpoint, fetcher, partitions) == {tp(0): 50, tp(1): 300}

    def test_dropped_partition(self, fetcher):
        """Test checkpointed partitions missing from the log are dropped."""
        checkpoint = {tp(0): 60, tp(1): 400, tp(5): 3}

        offsets = validate(checkpoint, fetcher, fetcher.list_partitions("orders"))

        assert offsets == {tp(0): 60, tp(1): 400}

    def test_new_partition_zero_policy(self, fetcher):
        """Test new partitions are left for the allocator to start at 0."""
        offsets = validate({tp(0): 60}, fetcher, fetcher.list_partitions("orders"))

        assert offsets == {tp(0): 60}

    def test_new_partition_earliest_policy(self, fetcher):
        """Test new partitions start at their earliest offset."""
        offsets = validate(
            {tp(0): 60},
            fetcher,
            fetcher.list_partitions("orders"),
            new_partition_policy=NewPartitionPolicy.EARLIEST,
        )

        assert offsets == {tp(0): 60, tp(1): 100}

    def test_broker_unavailable(self, fetcher):
        """Test broker failures propagate."""
        partitions = fetcher.list_partitions("orders")
        fetcher.set_available(False)

        with pytest.raises(BrokerUnavailable):
            validate({tp(0): 60}, fetcher, partitions)


class TestNewPartitionPolicy:
    """Test NewPartitionPolicy."""

    def test_parse(self):
        """Test parsing policy names."""
        assert NewPartitionPolicy.parse("ZERO") == NewPartitionPolicy.ZERO
        assert NewPartitionPolicy.parse("earliest") == NewPartitionPolicy.EARLIEST

    def test_parse_invalid(self):
        """Test unknown policy raises."""
        with pytest.raises(ValueError, match="zero' or 'earliest"):
            NewPartitionPolicy.parse("latest")
