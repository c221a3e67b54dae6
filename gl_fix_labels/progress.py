"""Terminal progress bar with an independent redraw heartbeat."""

from __future__ import annotations

import threading

from tqdm import tqdm

from gl_fix_labels.models import PROGRESS_REFRESH_INTERVAL

BAR_FORMAT = "[{bar:40}] {percentage:3.0f}% ({elapsed} elapsed)"


class ProgressReporter:
    """
    Progress bar driven through ``on_progress(completed, total)``.

    Used as a context manager: entering starts a daemon thread that redraws the
    bar every ``interval`` seconds so the elapsed time keeps moving while a
    request is in flight, leaving stops the thread and closes the bar.
    """

    def __init__(self, enabled: bool = True, interval: float = PROGRESS_REFRESH_INTERVAL, total: int = 100):
        self.enabled = enabled
        self.interval = interval
        self.bar = tqdm(total=total, bar_format=BAR_FORMAT, ascii=" =", disable=not enabled, leave=True)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> ProgressReporter:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._heartbeat, name="progress-heartbeat", daemon=True)
        self._thread.start()

    def _heartbeat(self) -> None:
        while not self._stop.wait(self.interval):
            with self._lock:
                self.bar.refresh()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __call__(self, completed: float, total: float) -> None:
        """Move the bar to ``completed / total`` of the way."""
        if total <= 0:
            return
        position = min(self.bar.total, self.bar.total * completed / total)
        with self._lock:
            self.bar.n = position
            self.bar.refresh()

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        with self._lock:
            self.bar.close()
