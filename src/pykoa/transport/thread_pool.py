"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections are handled on worker threads so the accept loop never waits
on a middleware chain.

    accept loop ──submit()──► [ bounded queue ] ──► pykoa-worker-0
                                                ──► pykoa-worker-1
                                                ──► ...

    queue full      → submit() returns False, the server answers 503
    all busy        → one more worker is started, up to max_workers
    shutdown()      → one None per worker, then join

Middleware is plain blocking code, which is why these are threads and not
an event loop.

=============================================================================
"""

from typing import Any, Callable, List, Optional, Tuple
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


# (func, args); None tells a worker to exit
Job = Optional[Tuple[Callable[..., Any], tuple]]


class ThreadPool:
    """
    Elastic pool of daemon worker threads.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up under load.
        queue_size: Jobs that may wait before submit() starts refusing.
        idle_timeout: How often an idle worker rechecks for shutdown.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            reject(conn)
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        self._jobs: "queue.Queue[Job]" = queue.Queue(maxsize=queue_size)
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._running = False

        self._busy = 0
        self._completed = 0
        self._failed = 0

    @property
    def busy_workers(self) -> int:
        return self._busy

    @property
    def stats(self) -> dict:
        """Worker and job counters for log lines."""
        with self._lock:
            return {
                "workers": {"total": len(self._threads), "busy": self._busy},
                "jobs": {
                    "queued": self._jobs.qsize(),
                    "completed": self._completed,
                    "failed": self._failed,
                },
            }

    def start(self):
        if self._running:
            return
        self._stopping.clear()
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn()
        self._running = True
        logger.info(f"Thread pool started with {self.min_workers} workers (max {self.max_workers})")

    def submit(self, func: Callable[..., Any], args: tuple = ()) -> bool:
        """
        Queue func(*args) without blocking.

        Returns:
            False if the queue is full and the job was dropped.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running or self._stopping.is_set():
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put_nowait((func, args))
        except queue.Full:
            return False

        with self._lock:
            if self._busy >= len(self._threads) and len(self._threads) < self.max_workers:
                logger.debug(f"All {len(self._threads)} workers busy, adding one")
                self._spawn()
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Let queued jobs drain first.
            timeout: Upper bound on draining, in seconds.
        """
        if not self._running:
            return

        self._stopping.set()

        if wait:
            deadline = time.monotonic() + timeout if timeout else None
            while not self._jobs.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(f"Abandoning {self._jobs.qsize()} queued jobs")
                    break
                time.sleep(0.05)

        with self._lock:
            threads = list(self._threads)

        for _ in threads:
            try:
                self._jobs.put_nowait(None)
            except queue.Full:
                # Workers also notice _stopping on their next idle poll
                break

        for thread in threads:
            thread.join(timeout=2.0)

        with self._lock:
            self._threads.clear()
        self._running = False
        logger.info(f"Thread pool stopped ({self._completed} jobs done, {self._failed} failed)")

    def _spawn(self):
        """Start one worker. Caller holds self._lock."""
        thread = threading.Thread(
            target=self._work,
            name=f"pykoa-worker-{len(self._threads)}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _work(self):
        while not self._stopping.is_set() or not self._jobs.empty():
            try:
                job = self._jobs.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if job is None:
                return

            func, args = job
            with self._lock:
                self._busy += 1
            try:
                func(*args)
            except Exception:
                # One failing job must not take the worker down
                logger.exception(f"Job {getattr(func, '__name__', func)!r} failed")
                with self._lock:
                    self._failed += 1
            else:
                with self._lock:
                    self._completed += 1
            finally:
                with self._lock:
                    self._busy -= 1
