"""Shared test fixtures."""

import threading
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeEngine:
    """Scripted stand-in for FFmpegEngine.

    ``progress`` ratios are reported during ``run_crop``. Set ``block`` to
    make ``run_crop`` wait until ``release`` is set, so tests can act while
    a job is in flight.
    """

    def __init__(self, work_dir: Path | None = None):
        self.work_dir = work_dir or Path("/nonexistent")
        self.ready = False
        self.init_error: Exception | None = None
        self.run_error: Exception | None = None
        self.cancel_error: Exception | None = None
        self.progress: list[float] = [0.25, 0.5, 1.0]
        self.output_data = b"cropped"
        self.files: dict[str, bytes] = {}
        self.runs: list[tuple] = []
        self.init_calls = 0
        self.cancel_calls = 0
        self.block = False
        self.started = threading.Event()
        self.release = threading.Event()
        self.last_on_progress = None

    def is_ready(self) -> bool:
        return self.ready

    def initialize(self) -> None:
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error
        self.ready = True

    def write_input(self, name: str, data: bytes) -> None:
        self.files[name] = data

    def input_path(self, name: str) -> Path:
        return self.work_dir / name

    def run_crop(self, input_name, x, y, w, h, output_name, on_progress=None):
        self.runs.append((input_name, x, y, w, h, output_name))
        self.last_on_progress = on_progress
        self.started.set()
        if self.block:
            self.release.wait(timeout=5)
        if self.run_error is not None:
            raise self.run_error
        for ratio in self.progress:
            if on_progress:
                on_progress(ratio)
        self.files[output_name] = self.output_data

    def read_output(self, name: str) -> bytes:
        return self.files[name]

    def remove(self, name: str) -> None:
        self.files.pop(name, None)

    def cancel(self) -> None:
        self.cancel_calls += 1
        if self.cancel_error is not None:
            raise self.cancel_error


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
