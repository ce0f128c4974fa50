"""Crop session — the state a host UI keeps for one loaded video."""

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Callable

from cropforge.analyzers.metadata import probe_metadata
from cropforge.engine import FFmpegEngine
from cropforge.manifest import SessionConfig
from cropforge.models import (
    BoardExtent,
    ClipPos,
    MediaMetadata,
    OutputArtifact,
    Rect,
    ViewBox,
)
from cropforge.orchestrator import Orchestrator, output_filename
from cropforge.playback import FrameSurface, PlaybackSynchronizer
from cropforge.selection import SelectionEngine
from cropforge.viewport import compute_clip_pos, compute_view_box

logger = logging.getLogger(__name__)


def _as_dict(obj) -> dict | None:
    return None if obj is None else asdict(obj)


class CropSession:
    """Board layout, probe result, selection, scrubber and crop job.

    Geometry is derived on demand from ``board`` and ``metadata``; loading
    a new source resets everything else.
    """

    def __init__(
        self,
        engine: FFmpegEngine | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.engine = engine or FFmpegEngine(encode_args=self.config.encode.to_args())
        self.orchestrator = Orchestrator(
            self.engine,
            suffix=self.config.output_suffix,
            fallback_name=self.config.fallback_name,
        )
        self.selection = SelectionEngine()
        self.board = BoardExtent(width=0, height=0)
        self.metadata: MediaMetadata | None = None
        self.playback: PlaybackSynchronizer | None = None
        self.filename: str | None = None

    # --- source ---

    def load_source(self, data: bytes, name: str, mime_type: str) -> MediaMetadata | None:
        """Replace the current video. Returns None if it could not be probed."""
        if self.playback is not None:
            self.playback.stop()
            self.playback = None
        self.metadata = None
        self.selection.clear()
        self.filename = name

        previous = self.orchestrator.input
        artifact = self.orchestrator.register_input(data, name, mime_type)
        if previous is not None:
            self._remove_files(previous.name, keep=artifact.name)
        input_path = self.engine.input_path(artifact.name)
        self.metadata = probe_metadata(input_path)

        if self.metadata is not None:
            surface = FrameSurface(input_path, input_path.with_name(".preview_frame.jpg"))
            self.playback = PlaybackSynchronizer(
                surface,
                interval=self.config.seek_interval,
                duration=self.metadata.duration,
            )
            logger.info("Loaded %s", name)
        return self.metadata

    def _remove_files(self, old_name: str, keep: str) -> None:
        # Drop the old input and its crop output from the work directory
        old_output = output_filename(old_name, self.config.output_suffix, self.config.fallback_name)
        for stale in {old_name, old_output} - {keep}:
            try:
                self.engine.remove(stale)
            except OSError as e:
                logger.warning("Could not remove %s: %s", stale, e)

    # --- geometry ---

    def resize(self, width: int, height: int) -> ClipPos | None:
        self.board = BoardExtent(width=max(int(width), 0), height=max(int(height), 0))
        return self.clip_pos

    @property
    def clip_pos(self) -> ClipPos | None:
        return compute_clip_pos(self.board, self.metadata)

    @property
    def view_box(self) -> ViewBox | None:
        return compute_view_box(self.metadata)

    # --- selection ---

    def press(self, x: float, y: float) -> None:
        self.selection.press(x, y)

    def move(self, x: float, y: float) -> Rect | None:
        return self.selection.move(x, y, self.clip_pos, self.view_box)

    def release(self, x: float, y: float) -> Rect | None:
        return self.selection.release(x, y, self.clip_pos, self.view_box)

    @property
    def rect(self) -> Rect | None:
        return self.selection.committed

    @property
    def preview(self) -> Rect | None:
        return self.selection.preview

    # --- playback ---

    def seek(self, seconds: float) -> float | None:
        if self.playback is None:
            return None
        self.playback.request(seconds)
        return self.playback.current_time

    @property
    def frame_path(self) -> Path | None:
        if self.playback is None or self.playback.applied is None:
            return None
        return self.playback.surface.frame_path

    # --- job ---

    def execute(self, on_progress: Callable[[float], None] | None = None) -> OutputArtifact | None:
        rect = self.rect
        if rect is None:
            return None
        if self.metadata is not None and not rect.fits(self.metadata):
            raise ValueError(f"{rect} does not fit a {self.metadata.width}x{self.metadata.height} video")
        return self.orchestrator.execute(rect, on_progress=on_progress)

    def cancel(self) -> None:
        self.orchestrator.cancel()

    def close(self) -> None:
        if self.playback is not None:
            self.playback.stop()
        self.orchestrator.reset()
        self.orchestrator.store.clear()
        close = getattr(self.engine, "close", None)
        if close is not None:
            close()

    def snapshot(self) -> dict:
        """JSON-ready view of the session for the host UI."""
        output = self.orchestrator.output
        return {
            "filename": self.filename,
            "metadata": _as_dict(self.metadata),
            "board": _as_dict(self.board),
            "clip_pos": _as_dict(self.clip_pos),
            "view_box": _as_dict(self.view_box),
            "preview": _as_dict(self.preview),
            "rect": _as_dict(self.rect),
            "current_time": self.playback.current_time if self.playback else 0.0,
            "status": self.orchestrator.status.value,
            "progress": round(self.orchestrator.progress, 3),
            "output": _as_dict(output),
        }
