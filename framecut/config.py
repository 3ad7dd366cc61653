"""Runtime settings read from FRAMECUT_* environment variables."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from framecut.ffutil import Toolchain


@dataclass
class Settings:
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    render_timeout: float | None = None
    log_level: str = "info"
    log_format: str = "text"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment, falling back to defaults."""
        env = os.environ if environ is None else environ

        timeout = None
        raw_timeout = env.get("FRAMECUT_RENDER_TIMEOUT", "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ValueError(
                    f"FRAMECUT_RENDER_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from e
            if timeout <= 0:
                raise ValueError("FRAMECUT_RENDER_TIMEOUT must be positive")

        return cls(
            ffmpeg=env.get("FRAMECUT_FFMPEG") or "ffmpeg",
            ffprobe=env.get("FRAMECUT_FFPROBE") or "ffprobe",
            render_timeout=timeout,
            log_level=env.get("FRAMECUT_LOG_LEVEL") or "info",
            log_format=env.get("FRAMECUT_LOG_FORMAT") or "text",
        )

    def toolchain(self) -> Toolchain:
        return Toolchain(
            ffmpeg=self.ffmpeg,
            ffprobe=self.ffprobe,
            render_timeout=self.render_timeout,
        )
