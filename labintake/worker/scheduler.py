import threading
from collections.abc import Callable

from labintake.logging.logger import Log


class PeriodicTask:
    """Runs ``fn`` every ``interval_seconds`` on a daemon thread until stopped."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        fn: Callable[[], object],
        run_immediately: bool = False,
    ) -> None:
        self.name = name
        self._interval = interval_seconds
        self._fn = fn
        self._run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        Log.info(f"Periodic task {self.name} started (every {self._interval}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        """Invoke the task; a failure is logged and the schedule continues."""
        try:
            self._fn()
        except Exception as exc:
            Log.exception(f"Periodic task {self.name} failed: {exc}")

    def _loop(self) -> None:
        if self._run_immediately:
            self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()
