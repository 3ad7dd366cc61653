"""Video descriptor: source metadata plus the pending edit plan.

A ``Video`` is obtained from :func:`load` and mutated in place by whoever
holds it. Nothing is shared between instances, so separate videos can be
probed and rendered independently.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

from framecut import ffutil
from framecut.ffutil import Toolchain
from framecut.models import TrimWindow

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30

TimeLike = timedelta | int | float


def _as_timedelta(value: TimeLike) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if value < 0:
        return -ffutil.seconds_to_timedelta(-value)
    return ffutil.seconds_to_timedelta(value)


def format_seconds(value: timedelta) -> str:
    """Shortest decimal form of *value* in seconds: 10, 1.5, 0.000001."""
    seconds = Decimal(value // timedelta(microseconds=1)).scaleb(-6).normalize()
    return f"{seconds:f}"


class Video:
    """Information about a video file and the operations to apply to it.

    Call :func:`load` to create one, apply transformations, then call
    :meth:`render` to write the output file. Loading never reads the media
    itself; ffprobe does that.
    """

    def __init__(
        self,
        filepath: str | Path,
        width: int,
        height: int,
        duration: timedelta,
        toolchain: Toolchain | None = None,
    ) -> None:
        self._filepath = str(filepath)
        self._width = width
        self._height = height
        self._fps = DEFAULT_FPS
        self._duration = duration
        self._start = timedelta(0)
        self._end = duration
        self._filters: list[str] = []
        self._toolchain = toolchain or Toolchain()

    def __repr__(self) -> str:
        return (
            f"Video({self._filepath!r}, {self._width}x{self._height}, "
            f"start={self._start}, end={self._end}, fps={self._fps})"
        )

    @property
    def filepath(self) -> str:
        return self._filepath

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def duration(self) -> timedelta:
        """Duration of the source video, ignoring any trim."""
        return self._duration

    @property
    def start(self) -> timedelta:
        return self._start

    @property
    def end(self) -> timedelta:
        return self._end

    @property
    def window(self) -> TrimWindow:
        return TrimWindow(start=self._start, end=self._end)

    @property
    def filters(self) -> tuple[str, ...]:
        return tuple(self._filters)

    # --- Trimming ---

    def _clamp(self, t: timedelta) -> timedelta:
        return min(max(t, timedelta(0)), self._duration)

    def set_start(self, start: TimeLike) -> None:
        """Set the output start time, relative to the source video."""
        self._start = self._clamp(_as_timedelta(start))
        if self._start > self._end:
            self._end = self._start

    def set_end(self, end: TimeLike) -> None:
        """Set the output end time, relative to the source video."""
        self._end = self._clamp(_as_timedelta(end))
        if self._end < self._start:
            self._start = self._end

    def trim(self, start: TimeLike, end: TimeLike) -> None:
        """Set both ends of the output window.

        ``start`` must be less than or equal to ``end`` or nothing changes.
        """
        start, end = _as_timedelta(start), _as_timedelta(end)
        if start > end:
            logger.debug("Ignoring inverted trim %s..%s on %s", start, end, self._filepath)
            return
        self.set_start(start)
        self.set_end(end)

    # --- Geometry and frame rate ---

    def set_size(self, width: int, height: int) -> None:
        """Scale the output to width x height."""
        self._width = width
        self._height = height
        self._filters.append(f"scale={width}:{height}")

    def crop(self, x: int, y: int, width: int, height: int) -> None:
        """Keep a sub-rectangle. (0,0) is top-left, x goes right, y goes down."""
        self._width = width
        self._height = height
        self._filters.append(f"crop={width}:{height}:{x}:{y}")

    def set_fps(self, fps: int) -> None:
        self._fps = fps

    # --- Output ---

    def filter_chain(self) -> str:
        return ",".join([*self._filters, "setsar=1", f"fps=fps={self._fps}"])

    def command_line(self, output: str | Path) -> list[str]:
        """Return the ffmpeg command :meth:`render` would run."""
        return [
            self._toolchain.ffmpeg,
            "-y",
            "-i", self._filepath,
            "-ss", format_seconds(self._start),
            "-t", format_seconds(self._end - self._start),
            "-vf", self.filter_chain(),
            "-strict", "-2",
            str(output),
        ]

    def render(self, output: str | Path) -> None:
        """Apply all operations and write the output video file."""
        ffutil.run_ffmpeg(self.command_line(output), toolchain=self._toolchain)


def load(path: str | Path, toolchain: Toolchain | None = None) -> Video:
    """Probe *path* and return a Video ready for editing."""
    toolchain = toolchain or Toolchain()
    result = ffutil.probe(path, toolchain=toolchain)
    return Video(
        filepath=path,
        width=result.width,
        height=result.height,
        duration=result.duration,
        toolchain=toolchain,
    )
