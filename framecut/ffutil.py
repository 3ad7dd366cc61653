"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import math
import shutil
import subprocess
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from framecut.models import ProbeResult

logger = logging.getLogger(__name__)


class FramecutError(Exception):
    """Base class for every error raised by framecut."""


class ToolNotFoundError(FramecutError, RuntimeError):
    pass


class MediaFileNotFoundError(FramecutError, FileNotFoundError):
    pass


class ProbeFailedError(FramecutError, RuntimeError):
    pass


class MalformedMetadataError(FramecutError, ValueError):
    """Raised when ffprobe output is not the JSON document we asked for."""
    pass


class NoStreamsError(FramecutError, ValueError):
    pass


class InvalidDurationError(FramecutError, ValueError):
    pass


class InvalidRotationError(FramecutError, ValueError):
    pass


class RenderFailedError(FramecutError, RuntimeError):
    pass


@dataclass
class Toolchain:
    """Locates and runs the external ffmpeg/ffprobe binaries.

    Every lookup and process spawn goes through this object. Pass another
    instance to ``probe`` or ``load`` to use different binaries.
    """

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    render_timeout: float | None = None

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run_probe(self, cmd: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(cmd, capture_output=True, text=True, check=True)

    def run_render(self, cmd: list[str]) -> subprocess.CompletedProcess:
        # stdout/stderr are inherited so ffmpeg's own output reaches the caller
        return subprocess.run(cmd, check=True, timeout=self.render_timeout)


def check_ffmpeg(toolchain: Toolchain | None = None) -> None:
    """Raise ToolNotFoundError if ffmpeg/ffprobe are not on PATH."""
    toolchain = toolchain or Toolchain()
    for cmd in (toolchain.ffmpeg, toolchain.ffprobe):
        if toolchain.which(cmd) is None:
            raise ToolNotFoundError(
                f"{cmd} not found on PATH; install ffmpeg (https://ffmpeg.org/) "
                "and make sure ffmpeg and ffprobe are on your PATH"
            )


def seconds_to_timedelta(seconds: float) -> timedelta:
    """Convert non-negative seconds to a timedelta, rounding half up.

    ``timedelta(seconds=...)`` rounds half to even, which would turn
    0.0000025s into 2us; adding 0.5 before truncating always gives 3us.
    """
    return timedelta(microseconds=int(seconds * 1_000_000 + 0.5))


def _dimension(stream: dict, key: str) -> int:
    value = stream.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedMetadataError(f"ffprobe returned invalid stream {key} {value!r}")
    return value


def parse_probe_output(data: dict) -> ProbeResult:
    """Interpret ffprobe's ``-show_format -show_streams`` JSON.

    Only the first stream is looked at. A ``rotate`` tag of +-90 or +-270
    degrees means the reported width/height are in unrotated coordinates, so
    they are swapped to match what a player displays.
    """
    streams = data.get("streams")
    if streams is None:
        streams = []
    if not isinstance(streams, list):
        raise MalformedMetadataError(
            f"ffprobe output has malformed streams: expected a list, got {type(streams).__name__}"
        )
    if not streams:
        raise NoStreamsError(
            "ffprobe output does not contain stream data; "
            "make sure the file contains a valid video"
        )

    fmt = data.get("format") or {}
    if not isinstance(fmt, dict):
        raise MalformedMetadataError(
            f"ffprobe output has malformed format: expected an object, got {type(fmt).__name__}"
        )
    raw_duration = fmt.get("duration")
    try:
        seconds = float(raw_duration)
    except (TypeError, ValueError) as e:
        raise InvalidDurationError(
            f"ffprobe returned invalid duration {raw_duration!r}: {e}"
        ) from e
    if not math.isfinite(seconds):
        raise InvalidDurationError(f"ffprobe returned invalid duration {raw_duration!r}")
    duration = seconds_to_timedelta(seconds)

    stream = streams[0]
    if not isinstance(stream, dict):
        raise MalformedMetadataError(
            f"ffprobe output has malformed stream: expected an object, got {type(stream).__name__}"
        )
    width = _dimension(stream, "width")
    height = _dimension(stream, "height")

    tags = stream.get("tags") or {}
    if not isinstance(tags, dict):
        raise MalformedMetadataError(
            f"ffprobe output has malformed tags: expected an object, got {type(tags).__name__}"
        )
    rotation = None
    raw_rotation = tags.get("rotate")
    if raw_rotation is not None:
        try:
            # JSON floats and booleans are not whole-number rotations
            if isinstance(raw_rotation, bool) or not isinstance(raw_rotation, (int, str)):
                raise TypeError(f"expected an integer, got {type(raw_rotation).__name__}")
            rotation = int(raw_rotation)
        except (TypeError, ValueError) as e:
            raise InvalidRotationError(
                f"ffprobe returned invalid rotation {raw_rotation!r}: {e}"
            ) from e
        # int() truncates toward zero, so -90 -> -1 and -270 -> -3
        flips = int(rotation / 90)
        if flips % 2 != 0:
            width, height = height, width

    return ProbeResult(
        duration=duration,
        width=width,
        height=height,
        rotation=rotation,
    )


def probe(input_path: str | Path, toolchain: Toolchain | None = None) -> ProbeResult:
    """Extract media metadata via ffprobe."""
    toolchain = toolchain or Toolchain()

    if toolchain.which(toolchain.ffprobe) is None:
        raise ToolNotFoundError(
            f"{toolchain.ffprobe} not found on PATH; install ffmpeg "
            "(https://ffmpeg.org/) and make sure ffprobe is on your PATH"
        )

    input_path = Path(input_path)
    if not input_path.is_file():
        raise MediaFileNotFoundError(f"Unable to load file: {input_path} does not exist")

    cmd = [
        toolchain.ffprobe,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = toolchain.run_probe(cmd)
    except subprocess.CalledProcessError as e:
        detail = e.stderr.strip() if e.stderr else str(e)
        raise ProbeFailedError(f"ffprobe failed for {input_path}: {detail}") from e
    except OSError as e:
        raise ProbeFailedError(f"ffprobe failed for {input_path}: {e}") from e

    try:
        data = json.loads(result.stdout)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedMetadataError(
            f"Unable to parse JSON output from ffprobe for {input_path}: {e}"
        ) from e
    if not isinstance(data, dict):
        raise MalformedMetadataError(
            f"Unable to parse JSON output from ffprobe for {input_path}: "
            f"expected an object, got {type(data).__name__}"
        )

    probe_result = parse_probe_output(data)
    logger.info(
        "Probed %s: %dx%d, %.3fs, rotation=%s",
        input_path,
        probe_result.width,
        probe_result.height,
        probe_result.duration.total_seconds(),
        probe_result.rotation,
    )
    return probe_result


def run_ffmpeg(cmd: list[str], toolchain: Toolchain | None = None) -> None:
    """Run an ffmpeg command, surfacing any failure as RenderFailedError."""
    toolchain = toolchain or Toolchain()
    logger.info("Rendering: %s", " ".join(cmd))
    try:
        toolchain.run_render(cmd)
    except subprocess.CalledProcessError as e:
        raise RenderFailedError(f"ffmpeg failed: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise RenderFailedError(f"ffmpeg failed: {e}") from e
    except OSError as e:
        raise RenderFailedError(f"ffmpeg failed: {e}") from e
