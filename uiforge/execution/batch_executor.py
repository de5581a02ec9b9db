"""Batched execution of unreliable remote calls.

Jobs are split into consecutive chunks of at most ``max_batch_size``. Chunks
run strictly one after another; the jobs inside a chunk run concurrently
with ``asyncio.gather``. Every job is wrapped in a retry loop with
exponential backoff for retryable failures (rate limits, 5xx, connection
resets, timeouts). A job that fails for good is recorded in the outcome's
error list and never affects its siblings.

Example:
    outcome = await run_batches(jobs, synthesize, RetryPolicy(max_batch_size=5))
    for error in outcome.errors:
        logger.warning(f"{error.name}: {error.error}")
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from uiforge.config import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_DELAY_BETWEEN_BATCHES_MS,
    DEFAULT_INITIAL_RETRY_DELAY_MS,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_RETRIES,
    RETRYABLE_STATUS_CODES,
    RETRYABLE_TRANSPORT_CODES,
    ForgeConfig,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


# =============================================================================
# Models
# =============================================================================


class RetryPolicy(BaseModel):
    """Batching and backoff settings. Delays are in milliseconds."""

    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=1)
    delay_between_batches_ms: int = Field(default=DEFAULT_DELAY_BETWEEN_BATCHES_MS, ge=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    initial_retry_delay_ms: int = Field(default=DEFAULT_INITIAL_RETRY_DELAY_MS, ge=0)
    backoff_multiplier: float = Field(default=DEFAULT_BACKOFF_MULTIPLIER, ge=1)

    @classmethod
    def from_config(cls, config: ForgeConfig) -> "RetryPolicy":
        return cls(
            max_batch_size=config.max_batch_size,
            delay_between_batches_ms=config.delay_between_batches_ms,
            max_retries=config.max_retries,
            initial_retry_delay_ms=config.initial_retry_delay_ms,
            backoff_multiplier=config.backoff_multiplier,
        )


class BatchJob(BaseModel):
    """One unit of work: an id, a display name and the operation's input."""

    id: str
    name: str
    payload: Any = None


class BatchError(BaseModel):
    """A job that failed after its retries (or immediately, if terminal)."""

    id: str
    name: str
    error: str
    error_type: str = ""
    retryable: bool = False


class BatchProgress(BaseModel):
    """Cumulative progress reported after each chunk."""

    processed: int
    total: int
    percent: float
    batch_index: int
    batch_count: int


class BatchOutcome(BaseModel):
    """Results keyed by job id, the failed jobs, and the fallback signal."""

    results: dict[str, Any] = Field(default_factory=dict)
    errors: list[BatchError] = Field(default_factory=list)
    fallback_used: bool = False

    @property
    def succeeded(self) -> int:
        return len(self.results)


# =============================================================================
# Retry Classification
# =============================================================================


def _status_of(error: BaseException) -> int | None:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _is_retryable_single(error: BaseException) -> bool:
    if isinstance(error, (ConnectionResetError, TimeoutError)):
        return True
    if _status_of(error) in RETRYABLE_STATUS_CODES:
        return True
    code = getattr(error, "code", None)
    return isinstance(code, str) and code.upper() in RETRYABLE_TRANSPORT_CODES


def is_retryable_error(error: BaseException) -> bool:
    """Check whether a failed call is worth retrying.

    Walks the ``__cause__`` chain so errors wrapped by an SDK still classify
    by their underlying status or transport code.
    """
    current: BaseException | None = error
    while current is not None:
        if _is_retryable_single(current):
            return True
        current = current.__cause__
    return False


# =============================================================================
# Execution
# =============================================================================


async def retry_with_backoff(
    operation: Callable[[BatchJob], Awaitable[Any]],
    job: BatchJob,
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Call ``operation(job)``, retrying retryable failures.

    At most ``max_retries + 1`` calls are made. The last error is re-raised.
    """
    delay_ms = float(policy.initial_retry_delay_ms)
    for attempt in range(policy.max_retries + 1):
        try:
            return await operation(job)
        except Exception as e:
            if attempt < policy.max_retries and is_retryable_error(e):
                logger.warning(
                    f"Job {job.name} retryable error (attempt {attempt + 1}/{policy.max_retries + 1}): "
                    f"{e}. Retrying in {delay_ms:.0f}ms..."
                )
                await sleep(delay_ms / 1000)
                delay_ms *= policy.backoff_multiplier
                continue
            raise
    raise AssertionError("unreachable")  # pragma: no cover


def _chunks(items: Sequence[BatchJob], size: int) -> list[Sequence[BatchJob]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


async def run_batches(
    items: Sequence[BatchJob],
    operation: Callable[[BatchJob], Awaitable[Any]],
    policy: RetryPolicy | None = None,
    *,
    precheck: Callable[[], Awaitable[bool]] | None = None,
    on_progress: Callable[[BatchProgress], None] | None = None,
    sleep: Sleep = asyncio.sleep,
) -> BatchOutcome:
    """Run ``operation`` over ``items`` in bounded, ordered batches.

    Args:
        items: Jobs to run; ids should be unique.
        operation: Async callable invoked once per attempt with the job.
        policy: Batching/backoff settings (defaults if omitted).
        precheck: Optional availability check run before anything else; if it
            returns False (or raises) no job runs and ``fallback_used`` is set.
        on_progress: Called after each chunk with cumulative progress.
        sleep: Injected for tests.

    Returns:
        BatchOutcome with results by job id and per-job errors.
    """
    policy = policy or RetryPolicy()

    if precheck is not None:
        try:
            available = await precheck()
        except Exception as e:  # a failing availability check is itself "unavailable"
            logger.warning(f"Precheck raised {type(e).__name__}: {e}")
            available = False
        if not available:
            logger.warning("Precheck failed, skipping batch execution (fallback)")
            return BatchOutcome(fallback_used=True)

    outcome = BatchOutcome()
    total = len(items)
    if total == 0:
        return outcome

    chunks = _chunks(list(items), policy.max_batch_size)
    processed = 0

    async def _run_one(job: BatchJob) -> tuple[BatchJob, Any, Exception | None]:
        try:
            result = await retry_with_backoff(operation, job, policy, sleep=sleep)
        except Exception as e:
            return job, None, e
        return job, result, None

    logger.info(f"Running {total} job(s) in {len(chunks)} batch(es) of up to {policy.max_batch_size}")

    for index, chunk in enumerate(chunks, start=1):
        logger.info(f"Batch {index}/{len(chunks)}: {len(chunk)} job(s)")
        settled = await asyncio.gather(*(_run_one(job) for job in chunk))

        for job, result, error in settled:
            if error is None:
                outcome.results[job.id] = result
            else:
                logger.error(f"Job {job.name} failed: {error}")
                outcome.errors.append(
                    BatchError(
                        id=job.id,
                        name=job.name,
                        error=str(error) or type(error).__name__,
                        error_type=type(error).__name__,
                        retryable=is_retryable_error(error),
                    )
                )

        processed += len(chunk)
        progress = BatchProgress(
            processed=processed,
            total=total,
            percent=round(processed * 100 / total, 1),
            batch_index=index,
            batch_count=len(chunks),
        )
        logger.info(f"Progress: {processed}/{total} ({progress.percent:.0f}%)")
        if on_progress:
            on_progress(progress)

        if index < len(chunks) and policy.delay_between_batches_ms > 0:
            await sleep(policy.delay_between_batches_ms / 1000)

    logger.info(f"Batch execution done: {outcome.succeeded} succeeded, {len(outcome.errors)} failed")
    return outcome
