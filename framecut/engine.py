"""Pipeline orchestration for a single Manifest."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from framecut import ffutil
from framecut.ffutil import Toolchain
from framecut.manifest import Manifest, apply_manifest
from framecut.video import load


@dataclass
class EngineResult:
    output_path: Path
    command: list[str] = field(default_factory=list)
    duration_original: float = 0.0
    duration_final: float = 0.0
    width: int = 0
    height: int = 0
    rendered: bool = False


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
    toolchain: Toolchain | None = None,
    dry_run: bool = False,
) -> EngineResult:
    """Execute the full editing pipeline.

    Args:
        manifest: Validated editing manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
        toolchain: ffmpeg/ffprobe locator; defaults to a PATH lookup.
        dry_run: Build the command line without running ffmpeg.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    toolchain = toolchain or Toolchain()
    if not dry_run:
        ffutil.check_ffmpeg(toolchain)

    _progress("Probing video metadata", 0.0)
    video = load(manifest.input, toolchain=toolchain)
    duration_original = video.duration.total_seconds()
    _progress("Probing video metadata", 0.1)

    _progress("Applying edits", 0.15)
    apply_manifest(video, manifest)
    command = video.command_line(manifest.output)

    result = EngineResult(
        output_path=manifest.output,
        command=command,
        duration_original=duration_original,
        duration_final=video.window.length.total_seconds(),
        width=video.width,
        height=video.height,
    )

    if dry_run:
        _progress("Done", 1.0)
        return result

    _progress("Encoding", 0.2)
    video.render(manifest.output)
    result.rendered = True

    # Probe final duration
    _progress("Verifying result", 0.9)
    final_probe = ffutil.probe(manifest.output, toolchain=toolchain)
    result.duration_final = final_probe.duration.total_seconds()

    _progress("Done", 1.0)
    return result
