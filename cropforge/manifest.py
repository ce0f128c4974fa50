"""JSON manifest schema — the contract between CLI/API and engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from cropforge.models import Rect


@dataclass
class EncodeConfig:
    """Encoder settings for the cropped output."""

    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = 18
    copy_audio: bool = True

    def to_args(self) -> list[str]:
        args = ["-c:v", self.video_codec]
        if self.video_codec == "libx264":
            args += ["-preset", self.preset, "-crf", str(self.crf)]
        if self.copy_audio:
            args += ["-c:a", "copy"]
        return args


@dataclass
class SessionConfig:
    """Settings shared by every crop session."""

    output_suffix: str = "_cropped"
    fallback_name: str = "output.mp4"
    seek_interval: float = 0.1
    encode: EncodeConfig = field(default_factory=EncodeConfig)


@dataclass
class CropManifest:
    """A single crop job: one input, one rectangle."""

    input: Path
    rect: Rect
    output: Path | None = None
    version: str = "1"
    session: SessionConfig = field(default_factory=SessionConfig)


def parse_rect(data: dict) -> Rect:
    try:
        return Rect(
            x=int(data["x"]),
            y=int(data["y"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )
    except KeyError as e:
        raise ValueError(f"Rect is missing field {e}") from e


def load_session_config(data: dict) -> SessionConfig:
    data = dict(data)
    encode = EncodeConfig(**data.pop("encode")) if "encode" in data else EncodeConfig()
    return SessionConfig(encode=encode, **data)


def load_manifest(path: str | Path) -> CropManifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "rect" not in data:
        raise ValueError("Manifest must contain 'input' and 'rect' fields")

    session = load_session_config(data["session"]) if "session" in data else SessionConfig()

    return CropManifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        rect=parse_rect(data["rect"]),
        output=Path(data["output"]) if data.get("output") else None,
        session=session,
    )
