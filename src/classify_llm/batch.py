"""Sequential batch driver with inter-batch pacing."""

import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from .exceptions import ConfigurationError
from .log import get_logger, init_logging

T = TypeVar("T")
R = TypeVar("R")

logger = get_logger(__name__)


def iter_batches(n: int, batch_size: int) -> list[range]:
    """Split ``range(n)`` into contiguous chunks of ``batch_size`` (last may be shorter)."""
    if batch_size <= 1:
        return [range(i, i + 1) for i in range(n)]
    return [range(start, min(start + batch_size, n)) for start in range(0, n, batch_size)]


def run_in_batches(
    items: Sequence[T],
    fn: Callable[[T], R],
    batch_size: int = 1,
    delay: float = 0.0,
    verbose: bool = False,
    progress: Any = None,
) -> list[R]:
    """Apply ``fn`` to every item, one call at a time, in input order.

    With ``batch_size > 1`` the items are grouped into chunks purely for
    pacing: after each chunk except the last the driver sleeps ``delay``
    seconds. Any exception raised by ``fn`` aborts the run and propagates;
    no partial results are returned.

    Args:
        items: Inputs to process
        fn: Function applied to each item
        batch_size: Number of items per pacing group; values <= 1 disable grouping
        delay: Seconds to sleep between groups
        verbose: Report progress at INFO level instead of DEBUG
        progress: Optional progress bar exposing ``update(n)`` (e.g. tqdm)

    Returns:
        List of results aligned with ``items``
    """
    if delay < 0:
        raise ConfigurationError("delay must be >= 0")
    if verbose:
        init_logging()
    report = logger.info if verbose else logger.debug

    n = len(items)
    results: list[Any] = [None] * n

    def process(i: int) -> None:
        try:
            results[i] = fn(items[i])
        except Exception:
            logger.error("Classification aborted at item %d/%d", i + 1, n)
            raise
        if progress is not None:
            progress.update(1)

    if batch_size <= 1:
        for i in range(n):
            report("Classifying %d/%d", i + 1, n)
            process(i)
        return results

    batches = iter_batches(n, batch_size)
    for b, batch in enumerate(batches, 1):
        report("Batch %d/%d (%d items)", b, len(batches), len(batch))
        for i in batch:
            process(i)
        if delay > 0 and b < len(batches):
            time.sleep(delay)

    return results
