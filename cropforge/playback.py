"""Playback synchronisation — follow a scrubber without flooding seeks."""

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Protocol

from cropforge import ffutil

logger = logging.getLogger(__name__)


class PlaybackSurface(Protocol):
    def seek(self, seconds: float) -> None: ...


class FrameSurface:
    """Playback surface that renders the frame under the playhead to disk."""

    def __init__(self, input_path: Path, frame_path: Path) -> None:
        self.input_path = input_path
        self.frame_path = frame_path
        self.position: float | None = None

    def seek(self, seconds: float) -> None:
        ffutil.extract_frame(self.input_path, seconds, self.frame_path)
        self.position = seconds


class PlaybackSynchronizer:
    """Apply the latest requested time to a surface, at most once per interval.

    Requests are buffered; a timer flushes the newest one. If more requests
    arrive while a seek is running, one more flush is scheduled so the
    surface always ends on the last requested time.
    """

    def __init__(
        self,
        surface: PlaybackSurface,
        interval: float = 0.1,
        duration: float | None = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.surface = surface
        self.interval = interval
        self.duration = duration
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._seek_lock = threading.Lock()
        self._timer = None
        self._pending: float | None = None
        self._current = 0.0
        self.applied: float | None = None

    @property
    def current_time(self) -> float:
        return self._current

    def request(self, seconds: float) -> None:
        seconds = max(seconds, 0.0)
        if self.duration is not None:
            seconds = min(seconds, self.duration)
        with self._lock:
            self._current = seconds
            self._pending = seconds
            if self._timer is None:
                self._schedule()

    def _schedule(self) -> None:
        timer = self._timer_factory(self.interval, self._on_timer)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self) -> None:
        self._apply_pending()
        with self._lock:
            if self._timer is None:
                # stopped while seeking
                return
            if self._pending is None:
                self._timer = None
            else:
                self._schedule()

    def _apply_pending(self) -> None:
        # Seeks are serialised so a later request is never overtaken
        with self._seek_lock:
            with self._lock:
                seconds, self._pending = self._pending, None
            if seconds is None:
                return
            try:
                self.surface.seek(seconds)
            except (subprocess.CalledProcessError, OSError) as e:
                logger.warning("Seek to %.3fs failed: %s", seconds, e)
                return
            self.applied = seconds

    def flush(self) -> None:
        """Apply any pending request now instead of waiting for the timer."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self._apply_pending()

    def stop(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
            self._pending = None
        if timer is not None:
            timer.cancel()
