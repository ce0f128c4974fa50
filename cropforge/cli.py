"""Thin CLI entry point — builds a crop job and runs it through the orchestrator."""

import argparse
import logging
import mimetypes
import subprocess
import sys
from pathlib import Path

from cropforge import ffutil
from cropforge.engine import EngineInitError, EngineRunError, FFmpegEngine
from cropforge.manifest import CropManifest, SessionConfig, load_manifest, parse_rect
from cropforge.orchestrator import Orchestrator


def _rect_arg(value: str):
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("expected X,Y,WIDTH,HEIGHT")
    try:
        return parse_rect(dict(zip(("x", "y", "width", "height"), parts)))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def run_crop(manifest: CropManifest) -> Path:
    """Crop ``manifest.input`` and write the result; return the output path."""
    metadata = ffutil.probe(manifest.input)
    if not manifest.rect.fits(metadata):
        raise ValueError(
            f"Crop {manifest.rect.width}x{manifest.rect.height}+{manifest.rect.x}+{manifest.rect.y} "
            f"exceeds the {metadata.width}x{metadata.height} video"
        )

    config = manifest.session
    engine = FFmpegEngine(encode_args=config.encode.to_args())
    orchestrator = Orchestrator(
        engine, suffix=config.output_suffix, fallback_name=config.fallback_name
    )

    def on_progress(frac: float) -> None:
        print(f"\r  [{frac:4.0%}] cropping", end="", flush=True)

    try:
        mime_type = mimetypes.guess_type(manifest.input.name)[0] or "video/mp4"
        orchestrator.register_input(manifest.input.read_bytes(), manifest.input.name, mime_type)
        artifact = orchestrator.execute(manifest.rect, on_progress=on_progress)
        print()
        if artifact is None:
            raise EngineRunError("Crop did not produce an output")
        output = manifest.output or manifest.input.with_name(artifact.name)
        output.write_bytes(orchestrator.store.read(artifact.locator))
    finally:
        orchestrator.reset()
        engine.close()
    return output


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="cropforge",
        description="CropForge — draw a region over a video and crop it with ffmpeg.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    prb = sub.add_parser("probe", help="Show the size and duration of a video")
    prb.add_argument("video", type=Path, help="Input video file")

    crop = sub.add_parser("crop", help="Crop a video file")
    crop.add_argument("video", nargs="?", type=Path, help="Input video file")
    crop.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    crop.add_argument("--rect", "-r", type=_rect_arg, help="Crop region as X,Y,WIDTH,HEIGHT in video pixels")
    crop.add_argument("--output", "-o", type=Path, help="Output file path")
    crop.add_argument("--suffix", type=str, default="_cropped", help="Suffix for the default output name")

    serve = sub.add_parser("serve", help="Launch the web UI")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from cropforge.web import create_app
        app = create_app()
        print(f"CropForge web UI: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    if args.command == "probe":
        try:
            metadata = ffutil.probe(args.video)
        except (subprocess.CalledProcessError, ValueError) as e:
            print(f"Error: cannot read {args.video}: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"{args.video}: {metadata.width}x{metadata.height}, {metadata.duration:.2f}s")
        return

    if args.manifest:
        m = load_manifest(args.manifest)
    elif args.video and args.rect:
        m = CropManifest(
            input=args.video,
            rect=args.rect,
            output=args.output,
            session=SessionConfig(output_suffix=args.suffix),
        )
    else:
        print("Error: provide VIDEO with --rect, or --manifest.", file=sys.stderr)
        sys.exit(1)

    try:
        output = run_crop(m)
    except (EngineInitError, EngineRunError, ValueError, OSError, subprocess.CalledProcessError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Done! Output: {output}")
