"""
Error taxonomy for offset planning.

Errors are split into retryable and non-retryable families so the
scheduler driving ingestion cycles can decide whether to re-run a cycle
from the same checkpoint or stop and wait for an operator.
"""


class OffsetPlannerError(Exception):
    """Base class for all planner errors."""
    pass


class RetryableError(OffsetPlannerError):
    """Failure that is safe to retry with the same checkpoint."""
    pass


class NonRetryableError(OffsetPlannerError):
    """Failure that will not go away on retry."""
    pass


class MalformedCheckpoint(NonRetryableError, ValueError):
    """
    Checkpoint string could not be decoded.

    Attributes:
        checkpoint: The offending checkpoint string
    """

    def __init__(self, message: str, checkpoint: str = ""):
        super().__init__(message)
        self.checkpoint = checkpoint


class BrokerUnavailable(RetryableError):
    """Broker could not answer a metadata or offset request."""
    pass


class UnsupportedResetStrategy(NonRetryableError, ValueError):
    """Configured offset reset strategy is not recognised."""
    pass


class InvariantViolation(NonRetryableError, ValueError):
    """Caller supplied inputs that break an allocator precondition."""
    pass
