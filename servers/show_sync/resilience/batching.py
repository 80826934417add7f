"""Bounded-concurrency batches for detail-page fetches."""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import structlog
from structlog.typing import FilteringBoundLogger

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 10,
    pause: float = 0.5,
    label: str = "batch",
    log: Optional[FilteringBoundLogger] = None,
) -> list[Optional[R]]:
    """Run `worker` over items, `batch_size` at a time.

    Items within a batch run concurrently; batches run one after another
    with `pause` seconds between them (none after the last). A worker that
    raises is logged and yields None in its slot, without affecting the
    rest of its batch.

    Args:
        items: Items to process, in order
        worker: Async function applied to each item
        batch_size: Maximum concurrent workers
        pause: Delay between batches in seconds
        label: Name used in log events
        log: Structured logger (module logger by default)

    Returns:
        One result per item, in input order (None where the worker failed)
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    log = log or logger
    results: list[Optional[R]] = []
    total_batches = (len(items) + batch_size - 1) // batch_size

    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        batch_number = start // batch_size + 1
        log.debug(
            "batch_started",
            label=label,
            batch=batch_number,
            total_batches=total_batches,
            size=len(batch),
        )

        outcomes: list[Any] = await asyncio.gather(
            *(worker(item) for item in batch), return_exceptions=True
        )

        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, Exception):
                log.warning(
                    "batch_item_failed",
                    label=label,
                    item=str(item),
                    error=str(outcome),
                )
                results.append(None)
            else:
                results.append(outcome)

        if start + batch_size < len(items) and pause > 0:
            await asyncio.sleep(pause)

    return results
