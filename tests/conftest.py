"""Shared test fixtures."""

import json
import subprocess
from pathlib import Path

import pytest

from framecut.ffutil import Toolchain

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def probe_json(
    duration: str = "20.0",
    width: int = 1920,
    height: int = 1080,
    rotate: str | None = None,
) -> str:
    stream = {"codec_type": "video", "width": width, "height": height}
    if rotate is not None:
        stream["tags"] = {"rotate": rotate}
    return json.dumps({"format": {"duration": duration}, "streams": [stream]})


class FakeToolchain(Toolchain):
    """Toolchain that never spawns a process."""

    def __init__(self, available=("ffmpeg", "ffprobe"), stdout=None, render_error=None,
                 create_output=False):
        super().__init__()
        self.create_output = create_output
        self.available = set(available)
        self.stdout = probe_json() if stdout is None else stdout
        self.render_error = render_error
        self.probe_calls: list[list[str]] = []
        self.render_calls: list[list[str]] = []

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.available else None

    def run_probe(self, cmd):
        self.probe_calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")

    def run_render(self, cmd):
        self.render_calls.append(cmd)
        if self.render_error is not None:
            raise self.render_error
        if self.create_output:
            Path(cmd[-1]).write_bytes(b"rendered")
        return subprocess.CompletedProcess(cmd, 0)


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"fake video data")
    return path


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()
