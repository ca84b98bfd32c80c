"""
=============================================================================
WORKER POOL
=============================================================================

Interop calls run here, off the request threads. Issuing a command never
blocks the conn that issued it: the call is queued, a worker runs it
against the InteropHost, and the result re-enters the runtime through
``Runtime.resume``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Runtime._issue ──► pool.submit(run_call, call_id)                  │
    │                              │                                       │
    │                              ▼                                       │
    │                    [ FIFO of Task | None ]                           │
    │                       │        │        │                            │
    │                       ▼        ▼        ▼                            │
    │                  worker-0  worker-1  worker-N   (N < max_workers)    │
    │                       │        │        │                            │
    │                       └────────┴────────┴──► Runtime.resume(conn)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIZING AND SHUTDOWN
=============================================================================

    start()      spawns min_workers threads
    submit()     spawns one more if every worker is busy and the call
                 had to queue, never beyond max_workers
    shutdown()   optionally waits for queued calls, then feeds every
                 worker a ``None`` (poison pill) and joins it

A call that raises is counted against its worker and logged. The runtime
turns host failures into messages before they get here, so a failure
counted by the pool is a bug in the runtime itself.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """One queued call: ``func(*args, **kwargs)``."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    queued_at: float = field(default_factory=time.monotonic)

    def __call__(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """
    Takes tasks off the shared queue until it receives the poison pill.
    """

    def __init__(self, tasks: "queue.Queue[Optional[Task]]", index: int):
        super().__init__(name=f"interop-worker-{index}", daemon=True)
        self.index = index
        self.state = WorkerState.IDLE
        self.completed = 0
        self.failed = 0
        self._tasks = tasks

    def run(self):
        logger.debug(f"{self.name} up")

        while True:
            task = self._tasks.get()
            try:
                if task is None:
                    return
                self._run_one(task)
            finally:
                self._tasks.task_done()
                if task is None:
                    self.state = WorkerState.STOPPED
                    logger.debug(f"{self.name} down")

    def _run_one(self, task: Task):
        self.state = WorkerState.BUSY
        waited = time.monotonic() - task.queued_at

        try:
            task()
        except Exception:
            self.failed += 1
            logger.exception(f"{self.name}: task failed after {waited:.3f}s in queue")
        else:
            self.completed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Elastic pool of worker threads between ``min_workers`` and ``max_workers``.

    Usage:
        pool = ThreadPool(min_workers=2, max_workers=8)
        pool.start()
        pool.submit(runtime._run_call, args=(17,))
        pool.shutdown(wait=True, timeout=5.0)
    """

    def __init__(self, min_workers: int = 2, max_workers: int = 8, queue_size: int = 1000):
        if not 1 <= min_workers <= max_workers:
            raise ValueError("need 1 <= min_workers <= max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers

        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._running = False

    @property
    def started(self) -> bool:
        return self._running

    def start(self):
        """Spawn the initial workers. A second call does nothing."""
        with self._lock:
            if self._running:
                return
            for _ in range(self.min_workers):
                self._spawn()
            self._running = True

        logger.info(f"Interop pool started ({self.min_workers}-{self.max_workers} workers)")

    def _spawn(self) -> Worker:
        # caller holds self._lock
        worker = Worker(self._tasks, index=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> None:
        """
        Queue ``func(*args, **kwargs)`` for a worker.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        self._tasks.put(Task(func, args, kwargs or {}))

        with self._lock:
            if self._saturated() and len(self._workers) < self.max_workers:
                logger.debug(f"All {len(self._workers)} workers busy, adding one")
                self._spawn()

    def _saturated(self) -> bool:
        idle = sum(1 for w in self._workers if w.state is WorkerState.IDLE)
        return idle == 0 and not self._tasks.empty()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop accepting tasks and stop every worker.

        With ``wait``, queued tasks finish first; ``timeout`` bounds that
        wait in seconds, after which queued tasks are abandoned. Tasks may
        still submit follow-up tasks while the queue drains.
        """
        if not self._running:
            return

        if wait and not self._drain(timeout):
            logger.warning("Interop pool shutdown timed out, abandoning queued calls")

        with self._lock:
            self._running = False
            workers = list(self._workers)

        for _ in workers:
            try:
                self._tasks.put_nowait(None)
            except queue.Full:
                break

        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()

        logger.info("Interop pool stopped")

    def _drain(self, timeout: Optional[float]) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._tasks.unfinished_tasks:
            if deadline is not None and time.monotonic() > deadline:
                return False
            time.sleep(0.02)
        return True

    @property
    def stats(self) -> dict:
        """Worker and task counts for logs and tests."""
        workers = list(self._workers)
        return {
            "workers": len(workers),
            "busy": sum(1 for w in workers if w.state is WorkerState.BUSY),
            "queued": self._tasks.qsize(),
            "completed": sum(w.completed for w in workers),
            "failed": sum(w.failed for w in workers),
        }
