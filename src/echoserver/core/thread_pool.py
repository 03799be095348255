"""
=============================================================================
THREAD POOL
=============================================================================

A fixed-floor, bounded-ceiling pool of worker threads fed from one queue.
The accept loop submits each connection; a worker owns it from the first
request to the close.

    accept loop                    queue (bounded)              workers
    ───────────                    ───────────────              ───────
    submit(conn) ──────────► [ conn | conn | conn ] ──────► Worker-0 (busy)
                                                    ──────► Worker-1 (idle)
         │                                          ──────► Worker-2 (busy)
         │ queue full?
         └──► False  → the server answers 503 itself

    A job that waits past its timeout, or is still queued when the pool
    stops without waiting, is not run. Its on_expire callback runs
    instead; the server uses it to answer 503 and close the socket.

=============================================================================
SCALING
=============================================================================

min_workers threads start with the pool. When every worker is busy and
connections are still waiting, one more is started, up to max_workers.
Workers are not retired when load drops; a connection-per-thread echo
server rarely needs more than a handful.

=============================================================================
SHUTDOWN
=============================================================================

One sentinel (None) per worker. Each worker finishes the connection it
is serving, takes a sentinel and exits. Workers also poll a stop flag
every `poll_interval` seconds, so a sentinel lost to a full queue only
delays the exit.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """
    One queued call, usually "serve this connection".

    Attributes:
        max_wait: Longest the job may sit in the queue. A worker that
                  picks it up later than this skips it.
        on_expire: Called with the job's args instead of func when the
                   job is skipped, so the caller can release what it queued.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    max_wait: Optional[float] = None
    on_expire: Optional[Callable[..., Any]] = None
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def expired(self) -> bool:
        return self.max_wait is not None and time.monotonic() - self.queued_at > self.max_wait


class Worker(threading.Thread):
    """Runs jobs for its pool until it takes a sentinel."""

    def __init__(self, pool: "ThreadPool", worker_id: int):
        super().__init__(name=f"echo-worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

    def run(self):
        jobs = self.pool._jobs

        while not self.pool._stopping.is_set():
            try:
                job = jobs.get(timeout=self.pool.poll_interval)
            except queue.Empty:
                continue

            try:
                if job is None:
                    break
                self._run_job(job)
            finally:
                jobs.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} exited")

    def _run_job(self, job: Job):
        if job.expired:
            logger.warning(f"{self.name}: job waited over {job.max_wait}s in the queue, skipped")
            self.pool._count("expired")
            if job.on_expire is not None:
                try:
                    job.on_expire(*job.args, **job.kwargs)
                except Exception as e:
                    logger.exception(f"{self.name}: expiry callback raised {type(e).__name__}: {e}")
            return

        self.state = WorkerState.BUSY
        try:
            job.func(*job.args, **job.kwargs)
        except Exception as e:
            # Keep the worker alive for the next connection
            logger.exception(f"{self.name}: job raised {type(e).__name__}: {e}")
            self.pool._count("failed")
        else:
            self.pool._count("completed")
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Worker pool with a bounded queue.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=8, queue_size=100)
        pool.start()
        if not pool.submit(handle, args=(conn,), block=False):
            reject(conn)
        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        poll_interval: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max(max_workers, min_workers)
        self.max_queue_size = queue_size
        self.poll_interval = poll_interval

        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._started = False
        self._counters = {"completed": 0, "failed": 0, "expired": 0}

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopping.is_set()

    def start(self):
        """Start min_workers threads. Calling it again is a no-op."""
        if self._started:
            return

        self._stopping.clear()
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn()
        self._started = True

        logger.info(f"Thread pool started: {self.min_workers}-{self.max_workers} workers")

    def _spawn(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(self, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def _count(self, outcome: str):
        with self._lock:
            self._counters[outcome] += 1

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        timeout: Optional[float] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
        on_expire: Optional[Callable[..., Any]] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Args:
            timeout: Longest the job may wait in the queue before a worker
                     picks it up.
            block: Wait for queue space when the queue is full.
            queue_timeout: How long to wait for space when blocking.
            on_expire: Run with the same arguments if the job waits past
                       `timeout` and is skipped.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool isn't running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")

        job = Job(
            func=func, args=args, kwargs=kwargs or {}, max_wait=timeout, on_expire=on_expire
        )

        try:
            self._jobs.put(job, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        with self._lock:
            if len(self._workers) < self.max_workers and self.idle_workers == 0:
                self._spawn()
                logger.debug(f"Thread pool grew to {len(self._workers)} workers")

        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued jobs run before stopping. With False, jobs
                  still in the queue are discarded.
            timeout: Upper bound on the wait for queued jobs.
        """
        if not self._started:
            return

        logger.info("Stopping thread pool...")

        if wait:
            deadline = time.monotonic() + timeout if timeout else None
            while self._jobs.unfinished_tasks > self.busy_workers or not self._jobs.empty():
                if deadline and time.monotonic() > deadline:
                    logger.warning("Thread pool did not drain in time, stopping anyway")
                    break
                time.sleep(0.05)
        else:
            self._discard_queued()

        with self._lock:
            workers = list(self._workers)

        for _ in workers:
            try:
                self._jobs.put_nowait(None)
            except queue.Full:
                break

        self._stopping.set()
        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool stopped")

    def _discard_queued(self):
        while True:
            try:
                job = self._jobs.get_nowait()
            except queue.Empty:
                return
            try:
                if job is not None and job.on_expire is not None:
                    job.on_expire(*job.args, **job.kwargs)
            except Exception as e:
                logger.exception(f"Discarding queued job: callback raised {type(e).__name__}: {e}")
            finally:
                self._jobs.task_done()

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def pending(self) -> int:
        """Jobs waiting in the queue."""
        return self._jobs.qsize()

    @property
    def stats(self) -> dict:
        with self._lock:
            counters = dict(self._counters)
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self.pending,
            **counters,
        }
