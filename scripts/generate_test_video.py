#!/usr/bin/env python3
"""Generate a synthetic video for trying out crops by hand.

Produces a 6-second 640x360 clip (16:9, so it letterboxes on a square or
portrait board) with a 1 kHz tone. A white 160x90 box sits at (240, 135),
the exact centre, so cropping to ``240,135,160,90`` should yield a plain
white video.
"""

import subprocess
import sys
from pathlib import Path


def generate_test_video(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    video_filter = (
        "color=c=navy:s=640x360:d=6:r=30,"
        "drawbox=x=240:y=135:w=160:h=90:color=white:t=fill[vout]"
    )
    audio_filter = "sine=f=1000:d=6[aout]"

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", f"{video_filter};{audio_filter}",
        "-map", "[vout]",
        "-map", "[aout]",
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-shortest",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/boxed.mp4")
    generate_test_video(out)
