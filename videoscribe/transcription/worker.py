"""Background worker running HTTP coroutines on its own event loop."""

import asyncio
import logging
import threading
import queue
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class RequestTask(NamedTuple):
    """A request to be run by a worker thread."""
    name: str
    coroutine_factory: Callable[[], Awaitable[Any]]
    future: Future


class RequestWorker:
    """Worker threads, each owning an asyncio loop, fed from one task queue.

    Callers get a ``concurrent.futures.Future`` back, so they can either block
    on ``result()`` or attach a done callback and return immediately. With
    the default single thread, requests run strictly in submission order.
    """

    def __init__(self, name: str = "requests", max_concurrent_threads: int = 1):
        self.name = name
        self.max_concurrent_threads = max_concurrent_threads

        self.task_queue: "queue.Queue[Optional[RequestTask]]" = queue.Queue()
        self.worker_threads: List[threading.Thread] = []
        self.shutdown_event = threading.Event()

        self._start_workers()

    def _start_workers(self):
        while len(self.worker_threads) < self.max_concurrent_threads:
            thread = threading.Thread(
                target=self._serve,
                name=f"worker_{self.name}_{len(self.worker_threads)}",
                daemon=True,
            )
            thread.start()
            self.worker_threads.append(thread)
        logger.info(f"Started {len(self.worker_threads)} {self.name} workers")

    def _serve(self):
        """Run tasks from the queue until a None sentinel arrives."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            for task in iter(self.task_queue.get, None):
                try:
                    self._run(loop, task)
                finally:
                    self.task_queue.task_done()
            self.task_queue.task_done()
        finally:
            loop.close()
            logger.debug(f"{threading.current_thread().name} stopped")

    def _run(self, loop: asyncio.AbstractEventLoop, task: RequestTask) -> None:
        if not task.future.set_running_or_notify_cancel():
            logger.debug(f"Skipping cancelled task {task.name}")
            return

        logger.debug(f"Running task {task.name}")
        try:
            result = loop.run_until_complete(task.coroutine_factory())
        except Exception as e:
            logger.debug(f"Task {task.name} raised {type(e).__name__}: {e}")
            task.future.set_exception(e)
        else:
            task.future.set_result(result)

    def submit(self, name: str, coroutine_factory: Callable[[], Awaitable[Any]]) -> Future:
        """Queue a coroutine to run on a worker thread.

        Args:
            name: Label used in log messages
            coroutine_factory: Zero-argument callable returning the coroutine to await

        Returns:
            Future resolved with the coroutine's result or exception

        Raises:
            RuntimeError: If the worker has been shut down
        """
        if self.shutdown_event.is_set():
            raise RuntimeError(f"{self.name} worker is shut down")

        future: Future = Future()
        self.task_queue.put(RequestTask(name, coroutine_factory, future))
        return future

    def shutdown(self, timeout: float = 30.0) -> bool:
        """Let queued requests finish, then stop the worker threads.

        Returns:
            True if every thread stopped in time
        """
        logger.info(f"Shutting down {self.name} worker...")
        self.shutdown_event.set()

        with self.task_queue.all_tasks_done:
            drained = self.task_queue.all_tasks_done.wait_for(
                lambda: self.task_queue.unfinished_tasks == 0, timeout=timeout)
        if not drained:
            logger.warning(f"[{self.name}] {self.task_queue.unfinished_tasks} requests still queued at shutdown")

        for _ in self.worker_threads:
            self.task_queue.put(None)

        stuck = []
        for thread in self.worker_threads:
            thread.join(2.0)
            if thread.is_alive():
                stuck.append(thread.name)
        if stuck:
            logger.warning(f"Worker threads did not terminate cleanly: {', '.join(stuck)}")

        logger.info(f"{self.name} worker shutdown complete.")
        return not stuck

    def get_pending_task_count(self) -> int:
        """Number of queued requests not yet picked up."""
        return self.task_queue.qsize()
