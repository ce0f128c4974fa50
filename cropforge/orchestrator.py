"""Crop job orchestrator — drives one engine through a crop job lifecycle.

States: idle -> processing -> completed, and back to idle through
``cancel()`` or ``reset()``. Only one job runs at a time; ``execute``
outside the idle state does nothing.

``execute`` blocks the calling thread while the engine works. Progress
callbacks and ``cancel()`` may come from other threads; each run carries
a token so callbacks from an aborted run are dropped.
"""

import logging
import mimetypes
import re
import threading
from pathlib import PurePath
from typing import Callable

from cropforge.artifacts import ArtifactStore
from cropforge.engine import EngineInitError, EngineRunError, TranscodeEngine
from cropforge.models import InputArtifact, JobStatus, OutputArtifact, Rect

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = "_cropped"
DEFAULT_FALLBACK_NAME = "output.mp4"

_STEM_EXT_RE = re.compile(r"^(.+)\.([^.]+)$")


def output_filename(
    name: str, suffix: str = DEFAULT_SUFFIX, fallback: str = DEFAULT_FALLBACK_NAME
) -> str:
    """Insert ``suffix`` before the extension of ``name``'s base name.

    ``clip.mp4`` -> ``clip_cropped.mp4``. Names without an extension
    (``noext``, ``.hidden``, ``clip.``) get ``fallback``.
    """
    m = _STEM_EXT_RE.match(PurePath(name).name)
    if not m:
        return fallback
    return f"{m.group(1)}{suffix}.{m.group(2)}"


class Orchestrator:
    def __init__(
        self,
        engine: TranscodeEngine,
        store: ArtifactStore | None = None,
        suffix: str = DEFAULT_SUFFIX,
        fallback_name: str = DEFAULT_FALLBACK_NAME,
    ) -> None:
        self.engine = engine
        self.store = store if store is not None else ArtifactStore()
        self.suffix = suffix
        self.fallback_name = fallback_name

        self._lock = threading.Lock()
        self._status = JobStatus.IDLE
        self._progress = 0.0
        self._run_id = 0
        self._input: InputArtifact | None = None
        self._output: OutputArtifact | None = None

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def input(self) -> InputArtifact | None:
        return self._input

    @property
    def output(self) -> OutputArtifact | None:
        return self._output

    def register_input(self, data: bytes, name: str, mime_type: str) -> InputArtifact:
        """Make ``data`` available to the engine as the job input.

        Initialises the engine on first use. Any previous job state is
        discarded first.
        """
        self.reset()

        if not self.engine.is_ready():
            try:
                self.engine.initialize()
            except Exception as e:
                raise EngineInitError(f"Transcoding engine failed to start: {e}") from e

        self.engine.write_input(name, data)
        artifact = InputArtifact(name=name, mime_type=mime_type)
        with self._lock:
            self._input = artifact
        logger.info("Registered input %s (%s, %d bytes)", name, mime_type, len(data))
        return artifact

    def execute(
        self,
        rect: Rect | None,
        on_progress: Callable[[float], None] | None = None,
    ) -> OutputArtifact | None:
        """Crop the registered input to ``rect``.

        Returns the output artifact, or None when the call was a no-op or
        the job was cancelled while running. Engine failures put the job
        back to idle and raise EngineRunError.
        """
        if rect is None:
            return None

        with self._lock:
            if self._input is None or self._status is not JobStatus.IDLE:
                logger.debug("Ignoring execute in state %s", self._status.value)
                return None
            self._status = JobStatus.PROCESSING
            self._progress = 0.0
            self._run_id += 1
            run_id = self._run_id
            source = self._input

        output_name = output_filename(source.name, self.suffix, self.fallback_name)
        logger.info("Cropping %s to %s -> %s", source.name, rect, output_name)

        def progress_cb(ratio: float) -> None:
            accepted = self._update_progress(run_id, ratio)
            if accepted is not None and on_progress:
                on_progress(accepted)

        try:
            self.engine.run_crop(
                source.name,
                rect.x,
                rect.y,
                rect.width,
                rect.height,
                output_name,
                on_progress=progress_cb,
            )
            data = self.engine.read_output(output_name)
        except Exception as e:
            with self._lock:
                if run_id != self._run_id:
                    logger.info("Crop of %s stopped after cancel", source.name)
                    return None
                self._status = JobStatus.IDLE
                self._progress = 0.0
            raise EngineRunError(f"Crop of {source.name} failed: {e}") from e

        with self._lock:
            if run_id != self._run_id:
                logger.info("Discarding output of cancelled crop of %s", source.name)
                return None
            mime_type = mimetypes.guess_type(output_name)[0] or source.mime_type
            artifact = OutputArtifact(
                name=output_name,
                mime_type=mime_type,
                locator=self.store.mint(data),
            )
            self._output = artifact
            self._progress = 1.0
            self._status = JobStatus.COMPLETED

        logger.info("Crop complete: %s (%d bytes)", output_name, len(data))
        return artifact

    def _update_progress(self, run_id: int, ratio: float) -> float | None:
        with self._lock:
            if run_id != self._run_id or self._status is not JobStatus.PROCESSING:
                return None
            ratio = min(max(ratio, 0.0), 1.0)
            if ratio < self._progress:
                return None
            self._progress = ratio
            return ratio

    def cancel(self) -> None:
        """Abort or dismiss the current job; always ends idle."""
        with self._lock:
            if self._status is JobStatus.IDLE:
                return
            previous = self._status
            output = self._drop_job()

        self._finish_drop(output)
        logger.info("Job cancelled (was %s)", previous.value)

    def reset(self) -> None:
        """Forget the job and the registered input, from any state."""
        with self._lock:
            busy = self._status is not JobStatus.IDLE
            output = self._drop_job()
            self._input = None

        if busy:
            self._finish_drop(output)

    def _drop_job(self) -> OutputArtifact | None:
        # Caller holds the lock
        self._run_id += 1
        self._status = JobStatus.IDLE
        self._progress = 0.0
        output, self._output = self._output, None
        return output

    def _finish_drop(self, output: OutputArtifact | None) -> None:
        if output is not None:
            self.store.release(output.locator)
        try:
            self.engine.cancel()
        except Exception as e:
            logger.warning("Engine did not stop cleanly: %s", e)
