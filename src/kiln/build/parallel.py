"""Parallel job runner.

Fork/join helper used for dependency extraction and compilation: submit one
job per item to a thread pool sized to the machine, wait for all of them and
return their results in submission order.

Design:
    - Threads, not processes: every job blocks on an external compiler
    - Pool size: KILN_JOBS if set, otherwise psutil.cpu_count()
    - Fail-fast: the first failing job cancels everything not yet started
      and its exception is re-raised; jobs already running finish but their
      results are discarded
    - A tqdm bar counts finished jobs (disabled for tests)
"""

import logging
import os
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence, TypeVar

import psutil
from tqdm import tqdm

logger = logging.getLogger(__name__)

JOBS_ENV = "KILN_JOBS"

T = TypeVar("T")
R = TypeVar("R")


def get_max_workers() -> int:
    """Number of worker threads to use.

    Returns:
        KILN_JOBS when it holds a positive integer, otherwise the logical CPU
        count reported by psutil (at least 1)
    """
    value = os.environ.get(JOBS_ENV, "").strip()
    if value:
        try:
            jobs = int(value)
            if jobs > 0:
                return jobs
        except ValueError:
            pass
        logger.warning(f"Ignoring invalid {JOBS_ENV}={value!r}")
    return psutil.cpu_count(logical=True) or 1


class ParallelRunner:
    """Runs independent jobs on a bounded thread pool."""

    def __init__(self, max_workers: Optional[int] = None, show_progress: bool = True):
        self.max_workers = max_workers or get_max_workers()
        self.show_progress = show_progress

    def map(self, func: Callable[[T], R], items: Sequence[T], description: str = "") -> List[R]:
        """Apply ``func`` to every item in parallel.

        Args:
            func: Job body; any exception it raises aborts the whole stage
            items: Work items
            description: Progress bar label

        Returns:
            Results in the same order as ``items``

        Raises:
            Exception: The first exception raised by any job
        """
        if not items:
            return []

        workers = min(self.max_workers, len(items))
        logger.info(f"Running {len(items)} jobs on {workers} workers: {description}")

        progress = tqdm(
            total=len(items),
            desc=description,
            unit="job",
            leave=False,
            disable=not self.show_progress,
        )
        executor = ThreadPoolExecutor(max_workers=workers)
        try:
            futures: List[Future] = [executor.submit(func, item) for item in items]
            for future in futures:
                future.add_done_callback(lambda _f: progress.update(1))

            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future.done() and not future.cancelled() and future.exception() is not None:
                    for other in pending:
                        other.cancel()
                    raise future.exception()  # type: ignore[misc]

            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=True)
            progress.close()
