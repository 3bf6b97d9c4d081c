# src/astroconv/core/threads.py
"""Distribute work indexes between threads and run them behind a barrier."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Tuple

import numpy as np

__all__ = [
    "NON_THREAD_INDEX",
    "distribute_in_threads",
    "thread_indexs",
    "make_barrier",
    "ThreadPlan",
    "run_in_threads",
]

logger = logging.getLogger(__name__)

# Larger than any index that can address an array in memory.
NON_THREAD_INDEX = int(np.iinfo(np.intp).max)

Worker = Callable[..., Any]


# ---------------------------------------------------------------------------
# Index distribution
# ---------------------------------------------------------------------------

def distribute_in_threads(nindexs: int, numthreads: int) -> Tuple[np.ndarray, int]:
    """
    Give each of `nindexs` jobs to one of `numthreads` threads.

    Index ``i`` goes to row ``i % numthreads`` and column ``i // numthreads``,
    so the number of jobs of any two threads differs by at most one. Every
    row finishes with :data:`NON_THREAD_INDEX`.

    Parameters
    ----------
    nindexs : int
        Number of independent jobs (pixels, rows, columns, ...).
    numthreads : int
        Number of threads, at least 1.

    Returns
    -------
    table : ndarray of intp, shape (numthreads, columns)
        Job indexes per thread, padded with the sentinel.
    columns : int
        ``nindexs // numthreads + 2``.
    """
    nindexs = int(nindexs)
    numthreads = int(numthreads)
    if numthreads < 1:
        raise ValueError(f"numthreads must be >= 1, got {numthreads!r}")
    if nindexs < 0:
        raise ValueError(f"nindexs must be >= 0, got {nindexs!r}")

    columns = nindexs // numthreads + 2
    table = np.full((numthreads, columns), NON_THREAD_INDEX, dtype=np.intp)

    i = np.arange(nindexs, dtype=np.intp)
    table[i % numthreads, i // numthreads] = i
    return table, columns


def thread_indexs(row: np.ndarray) -> np.ndarray:
    """Indexes of one table row, up to (not including) the sentinel."""
    row = np.asarray(row)
    stop = np.flatnonzero(row == NON_THREAD_INDEX)
    return row[: stop[0]] if stop.size else row


def make_barrier(numthreads: int) -> threading.Barrier:
    """
    Barrier for `numthreads` workers plus the thread that spun them off.
    """
    return threading.Barrier(int(numthreads) + 1)


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThreadPlan:
    table: np.ndarray
    columns: int
    nindexs: int
    numthreads: int

    @classmethod
    def build(cls, nindexs: int, numthreads: int) -> "ThreadPlan":
        table, columns = distribute_in_threads(nindexs, numthreads)
        return cls(table=table, columns=columns, nindexs=int(nindexs),
                   numthreads=int(numthreads))

    @property
    def active_threads(self) -> int:
        """Threads that actually received work."""
        return min(self.nindexs, self.numthreads)

    def indexs(self, thread_id: int) -> np.ndarray:
        return thread_indexs(self.table[thread_id])

    def make_barrier(self) -> threading.Barrier:
        return make_barrier(self.active_threads)

    def run(self, worker: Worker, *args: Any) -> None:
        """
        Call ``worker(indexs, *args)`` once per thread and wait for all.

        With a single thread the worker runs on the calling thread and no
        barrier is made. Otherwise one short-lived thread is spun off for
        every row that has work and the calling thread joins them on a
        barrier. If a worker raises, the barrier is aborted and the first
        exception is re-raised here once every thread has returned.
        """
        if self.numthreads == 1:
            worker(self.indexs(0), *args)
            return

        barrier = self.make_barrier()
        errors: list[BaseException] = []

        def _target(indexs: np.ndarray) -> None:
            try:
                worker(indexs, *args)
            except BaseException as exc:  # re-raised on the calling thread
                errors.append(exc)
                barrier.abort()
                return
            try:
                barrier.wait()
            except threading.BrokenBarrierError:
                pass

        threads: list[threading.Thread] = []
        for t in range(self.numthreads):
            if self.table[t, 0] == NON_THREAD_INDEX:
                continue
            th = threading.Thread(
                target=_target,
                args=(self.indexs(t),),
                name=f"astroconv-{t}",
                daemon=True,
            )
            th.start()
            threads.append(th)

        try:
            barrier.wait()
        except threading.BrokenBarrierError:
            pass
        for th in threads:
            th.join()

        if errors:
            logger.error("%d of %d threads failed", len(errors), len(threads))
            raise errors[0]


def run_in_threads(worker: Worker, nindexs: int, numthreads: int, *args: Any) -> None:
    """Distribute `nindexs` jobs in `numthreads` threads and run `worker` on them."""
    ThreadPlan.build(nindexs, numthreads).run(worker, *args)
