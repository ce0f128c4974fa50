"""Tests for the host-side crop session."""

from pathlib import Path
from unittest.mock import patch

import pytest

from cropforge.manifest import SessionConfig
from cropforge.models import ClipPos, JobStatus, MediaMetadata, Rect, ViewBox
from cropforge.session import CropSession

META = MediaMetadata(width=200, height=100, duration=10.0)


@pytest.fixture
def session(engine):
    s = CropSession(engine=engine, config=SessionConfig(seek_interval=60.0))
    with patch("cropforge.session.probe_metadata", return_value=META):
        s.load_source(b"video", "clip.mp4", "video/mp4")
    yield s
    s.close()


class TestLoadSource:
    def test_probe_and_register(self, session, engine):
        assert session.metadata == META
        assert session.orchestrator.input.name == "clip.mp4"
        assert engine.files["clip.mp4"] == b"video"
        assert session.view_box == ViewBox(0, 0, 200, 100)

    def test_unreadable_source(self, engine):
        s = CropSession(engine=engine)
        with patch("cropforge.session.probe_metadata", return_value=None):
            assert s.load_source(b"junk", "junk.mp4", "video/mp4") is None
        assert s.view_box is None
        assert s.seek(1.0) is None

    def test_new_source_resets_everything(self, session, engine):
        session.resize(100, 50)
        session.press(10, 10)
        session.release(50, 40)
        output = session.execute()
        assert session.orchestrator.status is JobStatus.COMPLETED

        with patch("cropforge.session.probe_metadata", return_value=META):
            session.load_source(b"other", "other.mp4", "video/mp4")

        assert session.rect is None
        assert session.orchestrator.output is None
        assert session.orchestrator.status is JobStatus.IDLE
        assert output.locator not in session.orchestrator.store

    def test_new_source_removes_old_files(self, session, engine):
        session.resize(100, 50)
        session.press(10, 10)
        session.release(50, 40)
        session.execute()
        assert set(engine.files) == {"clip.mp4", "clip_cropped.mp4"}

        with patch("cropforge.session.probe_metadata", return_value=META):
            session.load_source(b"other", "other.mp4", "video/mp4")

        assert engine.files == {"other.mp4": b"other"}

    def test_reloading_same_name_keeps_new_input(self, session, engine):
        with patch("cropforge.session.probe_metadata", return_value=META):
            session.load_source(b"second", "clip.mp4", "video/mp4")
        assert engine.files == {"clip.mp4": b"second"}


class TestGeometry:
    def test_clip_pos_before_resize(self, session):
        assert session.clip_pos is None

    def test_letterboxed(self, session):
        assert session.resize(400, 400) == ClipPos(left=0, top=100, width=400, height=200)


class TestSelectionAndExecute:
    def test_drag_then_execute(self, session, engine):
        session.resize(100, 50)
        session.press(10, 10)
        assert session.move(30, 30) == Rect(20, 20, 40, 40)
        assert session.release(50, 40) == Rect(20, 20, 80, 60)

        artifact = session.execute()
        assert engine.runs == [("clip.mp4", 20, 20, 80, 60, "clip_cropped.mp4")]
        assert artifact.name == "clip_cropped.mp4"

    def test_execute_without_rect_is_noop(self, session, engine):
        assert session.execute() is None
        assert engine.runs == []

    def test_cancel(self, session):
        session.resize(100, 50)
        session.press(0, 0)
        session.release(100, 50)
        session.execute()
        session.cancel()
        assert session.orchestrator.status is JobStatus.IDLE
        assert session.snapshot()["output"] is None


class TestSeek:
    def test_seek_is_buffered(self, session):
        assert session.seek(4.0) == 4.0
        assert session.seek(40.0) == 10.0
        assert session.frame_path is None

    @patch("cropforge.playback.ffutil.extract_frame")
    def test_flush_renders_frame(self, mock_extract, session):
        session.seek(2.0)
        session.playback.flush()
        assert mock_extract.call_args[0][1] == 2.0
        assert session.frame_path == Path("/nonexistent/.preview_frame.jpg")


class TestSnapshot:
    def test_json_ready(self, session):
        session.resize(100, 50)
        snap = session.snapshot()
        assert snap["filename"] == "clip.mp4"
        assert snap["metadata"] == {"width": 200, "height": 100, "duration": 10.0}
        assert snap["clip_pos"] == {"left": 0, "top": 0, "width": 100, "height": 50}
        assert snap["status"] == "idle"
        assert snap["rect"] is None
