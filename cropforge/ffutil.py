"""FFmpeg/ffprobe subprocess helpers."""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Callable

from cropforge.models import MediaMetadata


class FFmpegNotFoundError(RuntimeError):
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def _parse_duration(*candidates) -> float:
    # ffprobe reports "N/A" for streams without a known length
    for value in candidates:
        try:
            duration = float(value)
        except (TypeError, ValueError):
            continue
        if duration >= 0:
            return duration
    return 0.0


def probe(input_path: Path) -> MediaMetadata:
    """Extract native size and duration via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    video_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "video"), None
    )
    if video_stream is None:
        raise ValueError(f"No video stream found in {input_path}")

    width = int(video_stream.get("width", 0))
    height = int(video_stream.get("height", 0))
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid video dimensions {width}x{height} in {input_path}")

    return MediaMetadata(
        width=width,
        height=height,
        duration=_parse_duration(
            data.get("format", {}).get("duration"),
            video_stream.get("duration"),
        ),
    )


def crop_filter(x: int, y: int, w: int, h: int) -> str:
    return f"crop=x={x}:y={y}:w={w}:h={h}"


def build_crop_command(
    input_path: Path,
    x: int,
    y: int,
    w: int,
    h: int,
    output_path: Path,
    encode_args: list[str] | None = None,
) -> list[str]:
    """Build the ffmpeg command for a rectangular crop.

    Progress is written as key=value lines on stdout (``-progress pipe:1``);
    stderr is limited to errors so it can be drained after the run.
    """
    return [
        "ffmpeg", "-y",
        "-v", "error",
        "-nostats",
        "-i", str(input_path),
        "-vf", crop_filter(x, y, w, h),
        *(encode_args or []),
        "-progress", "pipe:1",
        str(output_path),
    ]


def parse_progress_line(line: str, duration: float) -> float | None:
    """Turn one ``-progress`` line into a completion ratio in [0, 1].

    Returns None for lines that carry no timing information. Both
    ``out_time_us`` and ``out_time_ms`` are in microseconds.
    """
    key, sep, value = line.strip().partition("=")
    if not sep:
        return None
    if key == "progress":
        return 1.0 if value == "end" else None
    if key not in ("out_time_us", "out_time_ms") or duration <= 0:
        return None
    try:
        seconds = int(value) / 1_000_000
    except ValueError:
        return None
    return min(max(seconds / duration, 0.0), 1.0)


def start_crop(
    input_path: Path,
    x: int,
    y: int,
    w: int,
    h: int,
    output_path: Path,
    encode_args: list[str] | None = None,
) -> subprocess.Popen:
    cmd = build_crop_command(input_path, x, y, w, h, output_path, encode_args)
    return subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )


def follow_progress(
    proc: subprocess.Popen,
    duration: float,
    on_progress: Callable[[float], None] | None = None,
) -> str:
    """Stream progress from a running ffmpeg until it exits.

    Raises CalledProcessError on a non-zero exit; returns stderr otherwise.
    """
    for line in proc.stdout:
        ratio = parse_progress_line(line, duration)
        if ratio is not None and on_progress:
            on_progress(ratio)

    stderr = proc.stderr.read() if proc.stderr else ""
    returncode = proc.wait()
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, proc.args, stderr=stderr)
    return stderr


def extract_frame(input_path: Path, seconds: float, output_path: Path) -> Path:
    """Render the frame at ``seconds`` as a still image."""
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-ss", f"{seconds:.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-q:v", "2",
        str(output_path),
    ]
    subprocess.run(cmd, capture_output=True, check=True)
    return output_path
