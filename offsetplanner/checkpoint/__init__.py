"""Checkpoint encoding and validation."""

from offsetplanner.checkpoint.codec import EMPTY_CHECKPOINT, Checkpoint, decode, encode
from offsetplanner.checkpoint.validator import NewPartitionPolicy, validate

__all__ = [
    "EMPTY_CHECKPOINT",
    "Checkpoint",
    "encode",
    "decode",
    "NewPartitionPolicy",
    "validate",
]
