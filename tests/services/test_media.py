"""
Tests for the ffprobe / ffmpeg wrappers (subprocess is patched; no FFmpeg needed)
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from tubely.services.media import (
    MediaProcessingError,
    MissingStreamDataError,
    classify_aspect_ratio,
    get_video_aspect_ratio,
    process_video_for_fast_start,
)


def probe_output(*streams):
    payload = json.dumps({"streams": list(streams)}).encode()
    return subprocess.CompletedProcess(args=["ffprobe"], returncode=0, stdout=payload, stderr=b"")


class TestClassifyAspectRatio:

    @pytest.mark.parametrize("width,height,expected", [
        (1920, 1080, "16:9"),
        (1080, 1920, "9:16"),
        (1000, 1000, "other"),
        (2000, 1000, "other"),
        (3840, 1080, "other"),
        (1001, 1000, "16:9"),
        (999, 1000, "9:16"),
    ])
    def test_buckets(self, width, height, expected):
        assert classify_aspect_ratio(width, height) == expected

    def test_zero_height_is_other(self):
        assert classify_aspect_ratio(1920, 0) == "other"


class TestGetVideoAspectRatio:

    def test_runs_ffprobe_with_json_streams(self):
        with patch("tubely.services.media.subprocess.run", return_value=probe_output({"width": 1920, "height": 1080})) as run:
            assert get_video_aspect_ratio("/tmp/clip.mp4", timeout=5) == "16:9"

        cmd = run.call_args.args[0]
        assert cmd == ["ffprobe", "-v", "error", "-print_format", "json", "-show_streams", "/tmp/clip.mp4"]
        assert run.call_args.kwargs["timeout"] == 5
        assert run.call_args.kwargs["check"] is True

    def test_uses_first_stream_only(self):
        streams = ({"width": 1080, "height": 1920}, {"width": 1920, "height": 1080})
        with patch("tubely.services.media.subprocess.run", return_value=probe_output(*streams)):
            assert get_video_aspect_ratio("clip.mp4") == "9:16"

    def test_custom_binary_path(self):
        with patch("tubely.services.media.subprocess.run", return_value=probe_output({"width": 10, "height": 10})) as run:
            get_video_aspect_ratio("clip.mp4", ffprobe_path="/opt/ffmpeg/bin/ffprobe")
        assert run.call_args.args[0][0] == "/opt/ffmpeg/bin/ffprobe"

    def test_empty_streams_raise_missing_stream_data(self):
        with patch("tubely.services.media.subprocess.run", return_value=probe_output()):
            with pytest.raises(MissingStreamDataError):
                get_video_aspect_ratio("clip.mp4")

    def test_invalid_json(self):
        bad = subprocess.CompletedProcess(args=["ffprobe"], returncode=0, stdout=b"not json", stderr=b"")
        with patch("tubely.services.media.subprocess.run", return_value=bad):
            with pytest.raises(MediaProcessingError):
                get_video_aspect_ratio("clip.mp4")

    @pytest.mark.parametrize("stdout", [b"[]", b"null", b'{"streams": 5}', b'{"streams": [1]}'])
    def test_unexpected_json_shape(self, stdout):
        odd = subprocess.CompletedProcess(args=["ffprobe"], returncode=0, stdout=stdout, stderr=b"")
        with patch("tubely.services.media.subprocess.run", return_value=odd):
            with pytest.raises(MediaProcessingError) as exc_info:
                get_video_aspect_ratio("clip.mp4")
        assert not isinstance(exc_info.value, MissingStreamDataError)

    def test_nonzero_exit(self):
        err = subprocess.CalledProcessError(1, ["ffprobe"], output=b"", stderr=b"moov atom not found")
        with patch("tubely.services.media.subprocess.run", side_effect=err):
            with pytest.raises(MediaProcessingError) as exc_info:
                get_video_aspect_ratio("clip.mp4")
        assert not isinstance(exc_info.value, MissingStreamDataError)

    def test_missing_binary(self):
        with patch("tubely.services.media.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(MediaProcessingError):
                get_video_aspect_ratio("clip.mp4")

    def test_timeout(self):
        with patch("tubely.services.media.subprocess.run", side_effect=subprocess.TimeoutExpired(["ffprobe"], 5)):
            with pytest.raises(MediaProcessingError, match="timed out"):
                get_video_aspect_ratio("clip.mp4", timeout=5)


class TestProcessVideoForFastStart:

    def test_remuxes_to_processing_sibling(self):
        done = subprocess.CompletedProcess(args=["ffmpeg"], returncode=0, stdout=b"", stderr=b"")
        with patch("tubely.services.media.subprocess.run", return_value=done) as run:
            output = process_video_for_fast_start("/tmp/video-upload.mp4", timeout=30)

        assert output == "/tmp/video-upload.mp4.processing"
        assert run.call_args.args[0] == [
            "ffmpeg", "-i", "/tmp/video-upload.mp4",
            "-c", "copy", "-movflags", "faststart", "-f", "mp4",
            "/tmp/video-upload.mp4.processing",
        ]
        assert run.call_args.kwargs["timeout"] == 30

    def test_failure(self):
        err = subprocess.CalledProcessError(1, ["ffmpeg"], output=b"", stderr=b"Invalid data found")
        with patch("tubely.services.media.subprocess.run", side_effect=err):
            with pytest.raises(MediaProcessingError):
                process_video_for_fast_start("clip.mp4")

    def test_timeout(self):
        with patch("tubely.services.media.subprocess.run", side_effect=subprocess.TimeoutExpired(["ffmpeg"], 1)):
            with pytest.raises(MediaProcessingError):
                process_video_for_fast_start("clip.mp4", timeout=1)
