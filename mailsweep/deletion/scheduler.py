"""Split id lists into paced batches for bulk gateway calls."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Aggregate result of running a worker over every batch."""

    deleted_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)
    batches: int = 0


def chunked(ids: Sequence[str], batch_size: int) -> list[list[str]]:
    """Contiguous chunks of at most ``batch_size`` ids."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [list(ids[i : i + batch_size]) for i in range(0, len(ids), batch_size)]


def run_batches(
    ids: Sequence[str],
    worker: Callable[[list[str]], int],
    batch_size: int = 50,
    pacing_delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    progress_callback: Callable[[int, int], None] | None = None,
) -> BatchReport:
    """
    Run ``worker`` over ``ids`` one batch at a time.

    A batch whose worker raises is counted as failed and the run continues
    with the next batch; the scheduler never aborts part way.

    Args:
        ids: Ordered item ids.
        worker: Called once per batch; returns how many items it processed.
        batch_size: Maximum ids per batch.
        pacing_delay: Seconds to wait between batches (not after the last).
        sleep: Sleep function, injectable for tests.
        progress_callback: Optional callback for progress updates (done, total).

    Returns:
        BatchReport with totals across all batches.
    """
    report = BatchReport()
    batches = chunked(ids, batch_size)
    total = len(ids)

    for index, batch in enumerate(batches):
        report.batches += 1
        try:
            processed = worker(batch)
            report.deleted_count += processed
            report.failed_count += len(batch) - processed
        except Exception as e:
            logger.error(f"Batch {index + 1}/{len(batches)} of {len(batch)} items failed: {e}")
            report.failed_count += len(batch)
            report.errors.append(f"Batch {index + 1} ({len(batch)} items): {e}")

        if progress_callback:
            progress_callback(report.deleted_count + report.failed_count, total)

        if index < len(batches) - 1:
            sleep(pacing_delay)

    return report
