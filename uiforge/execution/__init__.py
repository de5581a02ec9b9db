"""Batched, retrying execution of remote calls."""

from uiforge.execution.batch_executor import (
    BatchError,
    BatchJob,
    BatchOutcome,
    BatchProgress,
    RetryPolicy,
    is_retryable_error,
    retry_with_backoff,
    run_batches,
)

__all__ = [
    "BatchError",
    "BatchJob",
    "BatchOutcome",
    "BatchProgress",
    "RetryPolicy",
    "is_retryable_error",
    "retry_with_backoff",
    "run_batches",
]
