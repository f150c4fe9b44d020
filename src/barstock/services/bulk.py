"""Chunked concurrent writes with per-item failure accounting."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from barstock.config import get_settings
from barstock.logging_config import get_logger
from barstock.store import DuplicateRecordError

logger = get_logger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]


class BulkResult:
    """Outcome counts of a bulk write."""

    def __init__(self, total: int = 0) -> None:
        self.total: int = total
        self.succeeded: int = 0
        self.skipped: int = 0
        self.failed: int = 0
        self.errors: list[str] = []
        self.results: list[Any] = []

    @property
    def processed(self) -> int:
        return self.succeeded + self.skipped + self.failed

    def merge(self, other: "BulkResult") -> None:
        """Fold another result's counts into this one."""
        self.total += other.total
        self.succeeded += other.succeeded
        self.skipped += other.skipped
        self.failed += other.failed
        self.errors.extend(other.errors)
        self.results.extend(other.results)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
        }


async def run_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[Any]],
    chunk_size: int | None = None,
    on_progress: ProgressCallback | None = None,
    skip_duplicates: bool = False,
    label: str = "write",
) -> BulkResult:
    """
    Run ``worker`` over ``items`` a chunk at a time.

    Writes inside a chunk run concurrently; chunks run one after another.
    Failures are logged and counted but never undo earlier writes. With
    ``skip_duplicates`` a DuplicateRecordError counts as skipped instead of
    failed.

    Args:
        items: Inputs to process.
        worker: Coroutine function called once per item.
        chunk_size: Concurrent writes per chunk; defaults to settings.
        on_progress: Called with (processed, total) after each chunk.
        skip_duplicates: Treat uniqueness violations as already done.
        label: Name of the operation for log messages.

    Returns:
        BulkResult with counts, error messages and successful return values.
    """
    size = chunk_size or get_settings().bulk_write_chunk_size
    if size < 1:
        raise ValueError("chunk_size must be at least 1")

    result = BulkResult(total=len(items))

    for start in range(0, len(items), size):
        chunk = items[start : start + size]
        outcomes = await asyncio.gather(*(worker(item) for item in chunk), return_exceptions=True)

        for item, outcome in zip(chunk, outcomes):
            if isinstance(outcome, DuplicateRecordError) and skip_duplicates:
                logger.debug(f"Skipping {label}, already exists: {outcome}")
                result.skipped += 1
            elif isinstance(outcome, Exception):
                logger.warning(f"Failed {label} for {item!r}: {outcome}")
                result.failed += 1
                result.errors.append(str(outcome))
            else:
                result.succeeded += 1
                result.results.append(outcome)

        if on_progress is not None:
            on_progress(result.processed, result.total)

    if result.total:
        logger.info(
            f"Bulk {label}: {result.succeeded} succeeded, "
            f"{result.skipped} skipped, {result.failed} failed of {result.total}"
        )
    return result
