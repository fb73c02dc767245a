import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass

from labintake.logging.logger import Log


@dataclass(frozen=True)
class DispatchTask:
    """One processing attempt for a document.

    ``claimed`` is set when the caller already moved the row to processing
    (reprocess), so the processor must not claim it again.
    """

    document_id: int
    claimed: bool = False


_STOP = object()


class Dispatcher:
    """Bounded task queue drained by a fixed pool of worker threads.

    A document that is queued or in flight is never queued a second time, so
    two attempts for the same id cannot run concurrently.
    """

    def __init__(
        self,
        handler: Callable[[DispatchTask], None],
        concurrency: int = 3,
        queue_size: int = 500,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._handler = handler
        self._concurrency = concurrency
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        for i in range(self._concurrency):
            thread = threading.Thread(
                target=self._loop, name=f"dispatcher-{i + 1}", daemon=True
            )
            thread.start()
            self._threads.append(thread)
        Log.info(f"Dispatcher started with {self._concurrency} worker thread(s)")

    def stop(self, timeout: float | None = 10.0) -> None:
        """Let queued tasks finish, then stop the worker threads."""
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()
        Log.info("Dispatcher stopped")

    def join(self) -> None:
        """Block until every queued task has been handled."""
        self._queue.join()

    def dispatch(self, document_id: int, claimed: bool = False) -> bool:
        """Queue a document without blocking. Returns False if nothing was queued."""
        with self._lock:
            if document_id in self._in_flight:
                Log.debug(f"Document #{document_id} already queued, skipping dispatch")
                return False
            try:
                self._queue.put_nowait(DispatchTask(document_id, claimed))
            except queue.Full:
                Log.warning(
                    f"Dispatch queue full, document #{document_id} left for the next sweep"
                )
                return False
            self._in_flight.add(document_id)
        return True

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def _loop(self) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _STOP:
                    return
                self._handler(task)
            except Exception as exc:
                Log.exception(f"Unhandled error for document #{task.document_id}: {exc}")
            finally:
                if task is not _STOP:
                    with self._lock:
                        self._in_flight.discard(task.document_id)
                self._queue.task_done()
