"""Shared data types used across framecut."""

from dataclasses import dataclass
from datetime import timedelta


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe.

    ``width``/``height`` are already in displayed orientation. ``rotation`` is
    None when the stream carries no rotate tag.
    """

    duration: timedelta
    width: int
    height: int
    rotation: int | None = None


@dataclass
class TrimWindow:
    """A start/end pair relative to the source video."""

    start: timedelta
    end: timedelta

    @property
    def length(self) -> timedelta:
        return self.end - self.start
