"""Transcoding engine — the capability surface the orchestrator drives.

``TranscodeEngine`` is what the orchestrator depends on; ``FFmpegEngine``
implements it with ffmpeg subprocesses working in a scratch directory.
"""

import logging
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Callable, Protocol

from cropforge import ffutil

logger = logging.getLogger(__name__)


class EngineInitError(RuntimeError):
    """The engine could not be made ready."""
    pass


class EngineRunError(RuntimeError):
    """A crop run failed; no output was produced."""
    pass


class CancelError(RuntimeError):
    """The engine could not abort a running job."""
    pass


class TranscodeEngine(Protocol):
    def is_ready(self) -> bool: ...

    def initialize(self) -> None: ...

    def write_input(self, name: str, data: bytes) -> None: ...

    def run_crop(
        self,
        input_name: str,
        x: int,
        y: int,
        w: int,
        h: int,
        output_name: str,
        on_progress: Callable[[float], None] | None = None,
    ) -> None: ...

    def read_output(self, name: str) -> bytes: ...

    def remove(self, name: str) -> None: ...

    def cancel(self) -> None: ...


class FFmpegEngine:
    """Runs crops with the ffmpeg binary on PATH.

    Files written through the engine live in ``work_dir``; when none is
    given a temporary directory is created on ``initialize`` and removed
    by ``close``.
    """

    def __init__(self, work_dir: Path | None = None, encode_args: list[str] | None = None) -> None:
        self.work_dir = work_dir
        self.encode_args = list(encode_args or [])
        self._owns_work_dir = work_dir is None
        self._ready = False
        self._lock = threading.Lock()
        # Held for a whole run_crop call so one ffmpeg runs at a time
        self._run_lock = threading.Lock()
        self._proc: subprocess.Popen | None = None
        self._cancels = 0

    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        if self._ready:
            return
        ffutil.check_ffmpeg()
        if self.work_dir is None:
            self.work_dir = Path(tempfile.mkdtemp(prefix="cropforge_"))
        else:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        self._ready = True
        logger.debug("ffmpeg engine ready in %s", self.work_dir)

    def _path(self, name: str) -> Path:
        if not self._ready:
            raise RuntimeError("Engine is not initialized")
        # Only the base name is honoured; names never escape work_dir
        base = Path(name).name
        if base in ("", ".."):
            raise ValueError(f"Invalid file name: {name!r}")
        return self.work_dir / base

    def input_path(self, name: str) -> Path:
        return self._path(name)

    def write_input(self, name: str, data: bytes) -> None:
        self._path(name).write_bytes(data)

    def run_crop(
        self,
        input_name: str,
        x: int,
        y: int,
        w: int,
        h: int,
        output_name: str,
        on_progress: Callable[[float], None] | None = None,
    ) -> None:
        input_path = self._path(input_name)
        output_path = self._path(output_name)
        with self._lock:
            ticket = self._cancels

        # A cancelled run may still be shutting down; wait for it to exit
        with self._run_lock:
            duration = ffutil.probe(input_path).duration
            with self._lock:
                if self._cancels != ticket:
                    raise EngineRunError(f"Crop of {input_name} cancelled before ffmpeg started")
                proc = ffutil.start_crop(
                    input_path, x, y, w, h, output_path, encode_args=self.encode_args
                )
                self._proc = proc
            try:
                ffutil.follow_progress(proc, duration, on_progress)
            finally:
                with self._lock:
                    self._proc = None

    def read_output(self, name: str) -> bytes:
        return self._path(name).read_bytes()

    def remove(self, name: str) -> None:
        """Delete a file from the work directory if it is there."""
        if self._ready:
            self._path(name).unlink(missing_ok=True)

    def cancel(self) -> None:
        with self._lock:
            self._cancels += 1
            proc = self._proc
        if proc is None or proc.poll() is not None:
            return
        try:
            proc.terminate()
        except OSError as e:
            raise CancelError(f"Could not stop ffmpeg (pid {proc.pid}): {e}") from e
        logger.info("Sent terminate to ffmpeg (pid %s)", proc.pid)

    def close(self) -> None:
        self.cancel()
        if self._owns_work_dir and self.work_dir is not None:
            shutil.rmtree(self.work_dir, ignore_errors=True)
            self.work_dir = None
        self._ready = False
