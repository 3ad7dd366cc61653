"""Command-line entry point: builds a Manifest and calls the engine."""

import argparse
import json
import logging
import sys
from pathlib import Path

from framecut.config import Settings
from framecut.engine import process
from framecut.ffutil import FramecutError, probe
from framecut.logconfig import configure_logging
from framecut.manifest import Manifest, Operation, TrimConfig, load_manifest

logger = logging.getLogger(__name__)


def _parse_size(value: str) -> Operation:
    try:
        width, height = (int(v) for v in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    return Operation(kind="resize", width=width, height=height)


def _parse_crop(value: str) -> Operation:
    try:
        x, y, width, height = (int(v) for v in value.split(":"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X:Y:WIDTH:HEIGHT, got {value!r}")
    return Operation(kind="crop", width=width, height=height, x=x, y=y)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="framecut",
        description="framecut: trim, resize, crop and re-time videos with ffmpeg.",
    )
    parser.add_argument("--log-level", type=str, default=None, help="debug, info, warning or error")
    sub = parser.add_subparsers(dest="command")

    pr = sub.add_parser("probe", help="Show video metadata")
    pr.add_argument("video", type=Path, help="Input video file")
    pr.add_argument("--json", action="store_true", help="Print metadata as JSON")

    edit = sub.add_parser("edit", help="Edit a video file")
    edit.add_argument("video", type=Path, help="Input video file")
    edit.add_argument("--output", "-o", type=Path, help="Output file path")
    edit.add_argument("--start", type=float, help="Start of the output, in seconds")
    edit.add_argument("--end", type=float, help="End of the output, in seconds")
    edit.add_argument("--trim", type=float, nargs=2, metavar=("START", "END"), help="Set both ends")
    # --resize and --crop share a dest so they keep command-line order
    edit.add_argument("--resize", dest="operations", action="append", type=_parse_size,
                      metavar="WxH", help="Scale the output (repeatable)")
    edit.add_argument("--crop", dest="operations", action="append", type=_parse_crop,
                      metavar="X:Y:W:H", help="Crop the output (repeatable)")
    edit.add_argument("--fps", type=int, help="Output frame rate")
    edit.add_argument("--dry-run", action="store_true", help="Print the ffmpeg command only")

    proc = sub.add_parser("process", help="Run a JSON manifest")
    proc.add_argument("--manifest", "-m", type=Path, required=True, help="Path to a JSON manifest file")
    proc.add_argument("--dry-run", action="store_true", help="Print the ffmpeg command only")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _manifest_from_args(args: argparse.Namespace) -> Manifest:
    output = args.output or args.video.with_stem(args.video.stem + "_edited")
    if args.trim:
        trim = TrimConfig(start=args.trim[0], end=args.trim[1])
    else:
        trim = TrimConfig(start=args.start, end=args.end)
    return Manifest(
        input=args.video,
        output=output,
        trim=trim,
        operations=args.operations or [],
        fps=args.fps,
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(args.log_level or settings.log_level, settings.log_format)
    toolchain = settings.toolchain()

    if args.command == "serve":
        from framecut.web import create_app
        app = create_app(settings=settings)
        print(f"framecut web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        if args.command == "probe":
            meta = probe(args.video, toolchain=toolchain)
            info = {
                "path": str(args.video),
                "width": meta.width,
                "height": meta.height,
                "duration": meta.duration.total_seconds(),
                "rotation": meta.rotation,
            }
            if args.json:
                print(json.dumps(info, indent=2))
            else:
                print(f"{info['path']}: {meta.width}x{meta.height}, {info['duration']:.3f}s"
                      + (f", rotated {meta.rotation}°" if meta.rotation is not None else ""))
            return

        m = load_manifest(args.manifest) if args.command == "process" else _manifest_from_args(args)

        def on_progress(stage: str, frac: float) -> None:
            print(f"  [{frac:3.0%}] {stage}")

        result = process(m, on_progress=on_progress, toolchain=toolchain, dry_run=args.dry_run)
    except (FramecutError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    if not result.rendered:
        print(" ".join(result.command))
        return
    print(f"Done! Output: {result.output_path}")
    print(f"  Size: {result.width}x{result.height}")
    print(f"  Duration: {result.duration_original:.1f}s -> {result.duration_final:.1f}s")
