"""JSON edit manifests shared by the CLI, web API and engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from framecut.video import Video

OPERATION_KINDS = ("resize", "crop")


@dataclass
class TrimConfig:
    """Output window in seconds. Either end may be left open."""

    start: float | None = None
    end: float | None = None


@dataclass
class Operation:
    """A geometric edit. ``x``/``y`` only matter for crops."""

    kind: str
    width: int
    height: int
    x: int = 0
    y: int = 0

    def __post_init__(self) -> None:
        if self.kind not in OPERATION_KINDS:
            raise ValueError(
                f"Unknown operation {self.kind!r}; expected one of {', '.join(OPERATION_KINDS)}"
            )


@dataclass
class Manifest:
    """Top-level editing manifest."""

    input: Path
    output: Path
    version: str = "1"
    trim: TrimConfig = field(default_factory=TrimConfig)
    operations: list[Operation] = field(default_factory=list)
    fps: int | None = None


def parse_plan(data: dict) -> tuple[TrimConfig, list[Operation], int | None]:
    """Parse the edit portion of a manifest (everything but input/output)."""
    if not isinstance(data, dict):
        raise ValueError(f"Edit plan must be a JSON object, got {type(data).__name__}")
    try:
        trim = TrimConfig(**data["trim"]) if "trim" in data else TrimConfig()
    except TypeError as e:
        raise ValueError(f"Invalid trim in edit plan: {e}") from e

    operations = []
    for i, op in enumerate(data.get("operations", [])):
        if not isinstance(op, dict):
            raise ValueError(f"Invalid operation {i} in edit plan: expected a JSON object")
        op = dict(op)
        kind = op.pop("op", None) or op.pop("kind", None)
        try:
            operations.append(Operation(kind=kind, **op))
        except TypeError as e:
            raise ValueError(f"Invalid operation {i} in edit plan: {e}") from e
    fps = data.get("fps")
    try:
        fps = int(fps) if fps is not None else None
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid fps in edit plan: {fps!r}") from e
    return trim, operations, fps


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    trim, operations, fps = parse_plan(data)

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        trim=trim,
        operations=operations,
        fps=fps,
    )


def apply_plan(
    video: Video,
    trim: TrimConfig,
    operations: list[Operation],
    fps: int | None = None,
) -> Video:
    """Apply trim, then operations in order, then fps to *video* in place."""
    if trim.start is not None and trim.end is not None:
        video.trim(trim.start, trim.end)
    elif trim.start is not None:
        video.set_start(trim.start)
    elif trim.end is not None:
        video.set_end(trim.end)

    for op in operations:
        if op.kind == "resize":
            video.set_size(op.width, op.height)
        else:
            video.crop(op.x, op.y, op.width, op.height)

    if fps is not None:
        video.set_fps(fps)
    return video


def apply_manifest(video: Video, manifest: Manifest) -> Video:
    return apply_plan(video, manifest.trim, manifest.operations, manifest.fps)
