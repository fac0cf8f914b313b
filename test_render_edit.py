"""
Tests for render_edit.py - command line entry point
"""

import argparse

import pytest

from edit_config import load_edit_config
from edit_core import build_composer
from render_edit import main, parse_frame_range, parse_shard, select_frames


@pytest.fixture(scope="module")
def composer():
    return build_composer(load_edit_config())


class TestArguments:

    @pytest.mark.parametrize("text,expected", [
        ("100:130", (100, 130)),
        ("500:", (500, None)),
        (":10", (0, 10)),
        ("42", (42, 43)),
    ])
    def test_frame_range(self, text, expected):
        assert parse_frame_range(text) == expected

    @pytest.mark.parametrize("text", ["a:b", "10:5", "-1:4", "7:7"])
    def test_invalid_frame_range(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_frame_range(text)

    def test_shard(self):
        assert parse_shard("1/4") == (1, 4)

    @pytest.mark.parametrize("text", ["4/4", "1", "x/2", "0/0"])
    def test_invalid_shard(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_shard(text)


class TestSelectFrames:

    def test_whole_timeline(self, composer):
        assert select_frames(composer) == list(range(561))

    def test_range_clipped_to_timeline(self, composer):
        assert select_frames(composer, (550, 600)) == list(range(550, 561))

    def test_open_range(self, composer):
        assert select_frames(composer, (558, None)) == [558, 559, 560]

    def test_shards_partition(self, composer):
        shards = [select_frames(composer, None, (k, 4)) for k in range(4)]
        assert sorted(f for shard in shards for f in shard) == list(range(561))


class TestMain:

    def test_describe(self, capsys):
        assert main(["--describe"]) == 0
        assert "Total: 561 frames" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "none.yaml"), "--describe"]) == 1
        assert "ERROR" in capsys.readouterr().out

    def test_no_video_needs_png_dir(self):
        assert main(["--placeholder", "--no-video", "--frames", "0", "--quiet"]) == 1

    def test_placeholder_png_render(self, tmp_path):
        png_dir = tmp_path / "frames"
        argv = ["--placeholder", "--no-video", "--frames", "112", "--png-dir", str(png_dir), "--quiet"]
        assert main(argv) == 0
        assert (png_dir / "frame_00112.png").exists()
