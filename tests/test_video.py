"""Tests for the Video descriptor: trimming, geometry and command lines."""

import random
import subprocess
from datetime import timedelta

import pytest

from conftest import FakeToolchain, probe_json
from framecut.ffutil import NoStreamsError, RenderFailedError, ToolNotFoundError
from framecut.video import DEFAULT_FPS, Video, format_seconds, load


@pytest.fixture
def video(video_file, toolchain) -> Video:
    return load(video_file, toolchain=toolchain)


def _window(v: Video) -> tuple[float, float]:
    return v.start.total_seconds(), v.end.total_seconds()


class TestLoad:
    def test_initial_state(self, video, video_file):
        assert video.filepath == str(video_file)
        assert video.width == 1920
        assert video.height == 1080
        assert video.fps == DEFAULT_FPS == 30
        assert video.duration == timedelta(seconds=20)
        assert video.start == timedelta(0)
        assert video.end == video.duration
        assert video.filters == ()

    def test_rotated_source(self, video_file):
        toolchain = FakeToolchain(stdout=probe_json(width=640, height=480, rotate="-90"))
        v = load(video_file, toolchain=toolchain)
        assert (v.width, v.height) == (480, 640)

    def test_probe_errors_propagate(self, video_file):
        toolchain = FakeToolchain(stdout='{"format": {"duration": "1"}, "streams": []}')
        with pytest.raises(NoStreamsError):
            load(video_file, toolchain=toolchain)

    def test_missing_ffprobe(self, video_file):
        with pytest.raises(ToolNotFoundError):
            load(video_file, toolchain=FakeToolchain(available=()))


class TestSetStartEnd:
    def test_set_start(self, video):
        video.set_start(5)
        assert _window(video) == (5.0, 20.0)

    def test_set_start_clamps_negative(self, video):
        video.set_start(-3)
        assert video.start == timedelta(0)

    def test_set_start_past_end_pulls_end(self, video):
        video.set_end(8)
        video.set_start(12)
        assert _window(video) == (12.0, 12.0)

    def test_set_start_clamps_to_duration(self, video):
        video.set_start(100)
        assert _window(video) == (20.0, 20.0)

    def test_set_end_clamps_to_duration(self, video):
        video.set_end(timedelta(minutes=5))
        assert video.end == timedelta(seconds=20)

    def test_set_end_before_start_pulls_start(self, video):
        video.set_start(10)
        video.set_end(4)
        assert _window(video) == (4.0, 4.0)

    def test_set_end_negative(self, video):
        video.set_start(3)
        video.set_end(-1)
        assert _window(video) == (0.0, 0.0)

    def test_accepts_timedelta(self, video):
        video.set_start(timedelta(milliseconds=1500))
        assert video.start == timedelta(seconds=1.5)

    def test_window_stays_ordered_for_random_sequences(self, video):
        rng = random.Random(1234)
        zero = timedelta(0)
        for _ in range(500):
            t = rng.uniform(-10, 30)
            if rng.random() < 0.5:
                video.set_start(t)
            else:
                video.set_end(t)
            assert zero <= video.start <= video.end <= video.duration


class TestTrim:
    def test_trim(self, video):
        video.trim(2, 7)
        assert _window(video) == (2.0, 7.0)

    def test_inverted_trim_is_ignored(self, video):
        video.trim(3, 9)
        video.trim(8, 4)
        assert _window(video) == (3.0, 9.0)

    def test_inverted_out_of_range_trim_is_ignored(self, video):
        video.trim(-1, -5)
        assert _window(video) == (0.0, 20.0)

    def test_trim_clamps(self, video):
        video.trim(-4, 50)
        assert _window(video) == (0.0, 20.0)

    def test_equal_ends(self, video):
        video.trim(6, 6)
        assert _window(video) == (6.0, 6.0)

    def test_trim_then_individual_setters(self, video):
        video.trim(timedelta(seconds=10), timedelta(seconds=20))
        video.set_start(timedelta(seconds=1))
        video.set_end(timedelta(seconds=9))
        assert _window(video) == (1.0, 9.0)

    def test_window_length(self, video):
        video.trim(2.5, 10)
        assert video.window.length == timedelta(seconds=7.5)


class TestGeometry:
    def test_filters_accumulate_in_order(self, video):
        video.set_size(400, 300)
        video.crop(0, 0, 200, 200)
        video.set_size(400, 400)
        assert video.filters == ("scale=400:300", "crop=200:200:0:0", "scale=400:400")
        assert (video.width, video.height) == (400, 400)

    def test_crop_expression_puts_size_first(self, video):
        video.crop(10, 20, 300, 400)
        assert video.filters == ("crop=300:400:10:20",)
        assert (video.width, video.height) == (300, 400)

    def test_crop_is_not_bounds_checked(self, video):
        video.crop(5000, 5000, 10000, 10000)
        assert video.filters == ("crop=10000:10000:5000:5000",)

    def test_filters_is_a_copy(self, video):
        video.set_size(10, 10)
        filters = video.filters
        video.set_size(20, 20)
        assert filters == ("scale=10:10",)

    def test_set_fps_accepts_anything(self, video):
        video.set_fps(0)
        assert video.fps == 0
        video.set_fps(-5)
        assert video.fps == -5


class TestFormatSeconds:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (timedelta(0), "0"),
            (timedelta(seconds=10), "10"),
            (timedelta(seconds=1.5), "1.5"),
            (timedelta(milliseconds=250), "0.25"),
            (timedelta(microseconds=1), "0.000001"),
            (timedelta(minutes=2, microseconds=500), "120.0005"),
        ],
    )
    def test_minimal_representation(self, value, expected):
        assert format_seconds(value) == expected


class TestCommandLine:
    def test_defaults(self, video, video_file):
        assert video.command_line("out.mp4") == [
            "ffmpeg",
            "-y",
            "-i", str(video_file),
            "-ss", "0",
            "-t", "20",
            "-vf", "setsar=1,fps=fps=30",
            "-strict", "-2",
            "out.mp4",
        ]

    def test_trim_passes_start_and_length(self, video):
        video.trim(2.5, 10)
        cmd = video.command_line("out.mp4")
        assert cmd[cmd.index("-ss") + 1] == "2.5"
        assert cmd[cmd.index("-t") + 1] == "7.5"

    def test_user_filters_precede_mandatory_stages(self, video):
        video.set_size(400, 300)
        video.crop(0, 0, 200, 200)
        video.set_fps(24)
        cmd = video.command_line("out.mp4")
        stages = cmd[cmd.index("-vf") + 1].split(",")
        assert stages == ["scale=400:300", "crop=200:200:0:0", "setsar=1", "fps=fps=24"]
        assert stages.count("setsar=1") == 1
        assert sum(s.startswith("fps=fps=") for s in stages) == 1

    def test_output_is_last(self, video, tmp_path):
        out = tmp_path / "result.mp4"
        assert video.command_line(out)[-1] == str(out)

    def test_uses_configured_ffmpeg(self, video_file):
        toolchain = FakeToolchain(available=("/opt/ffmpeg", "ffprobe"))
        toolchain.ffmpeg = "/opt/ffmpeg"
        v = load(video_file, toolchain=toolchain)
        assert v.command_line("out.mp4")[0] == "/opt/ffmpeg"

    def test_is_repeatable(self, video):
        video.set_size(640, 360)
        assert video.command_line("a.mp4") == video.command_line("a.mp4")
        assert video.filters == ("scale=640:360",)


class TestRender:
    def test_runs_command_line(self, video, toolchain):
        video.trim(1, 2)
        video.render("out.mp4")
        assert toolchain.render_calls == [video.command_line("out.mp4")]

    def test_render_twice(self, video, toolchain):
        video.render("out.mp4")
        video.render("out.mp4")
        assert toolchain.render_calls[0] == toolchain.render_calls[1]

    def test_failure(self, video_file):
        toolchain = FakeToolchain(render_error=subprocess.CalledProcessError(1, ["ffmpeg"]))
        v = load(video_file, toolchain=toolchain)
        with pytest.raises(RenderFailedError, match="exit status 1"):
            v.render("out.mp4")
