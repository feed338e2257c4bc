"""
Thin wrappers around ffprobe / ffmpeg for uploaded videos:
aspect-ratio bucket for the storage prefix, and MP4 fast start (moov atom first).
"""
import json
import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

ASPECT_LANDSCAPE = "16:9"
ASPECT_PORTRAIT = "9:16"
ASPECT_OTHER = "other"

PROCESSING_SUFFIX = ".processing"


class MediaProcessingError(Exception):
    """ffprobe/ffmpeg could not run, failed, timed out or produced unusable output."""


class MissingStreamDataError(MediaProcessingError):
    """ffprobe succeeded but reported no streams."""


def _run(cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
    tool = cmd[0]
    try:
        return subprocess.run(cmd, check=True, capture_output=True, timeout=timeout)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
        logger.error("%s exited with %s: %s", tool, e.returncode, stderr)
        raise MediaProcessingError(f"{tool} exited with status {e.returncode}") from e
    except subprocess.TimeoutExpired as e:
        logger.error("%s timed out after %ss", tool, timeout)
        raise MediaProcessingError(f"{tool} timed out after {timeout}s") from e
    except OSError as e:
        logger.error("%s could not be started: %s", tool, e)
        raise MediaProcessingError(f"{tool} could not be started") from e


def classify_aspect_ratio(width: float, height: float) -> str:
    """
    Rough bucket from width/height: <1 portrait, between 1 and 2 landscape, anything else
    (exactly 1, >= 2, or no usable height) is "other". Not a general aspect-ratio classifier.
    """
    if not height:
        return ASPECT_OTHER
    ratio = width / height
    if ratio < 1.0:
        return ASPECT_PORTRAIT
    if 1.0 < ratio < 2.0:
        return ASPECT_LANDSCAPE
    return ASPECT_OTHER


def get_video_aspect_ratio(
    file_path: str | Path,
    ffprobe_path: str = "ffprobe",
    timeout: float = 60,
) -> str:
    """Return "16:9", "9:16" or "other" for the first stream reported by ffprobe."""
    cmd = [
        ffprobe_path,
        "-v", "error",
        "-print_format", "json",
        "-show_streams",
        str(file_path),
    ]
    result = _run(cmd, timeout)

    try:
        data = json.loads(result.stdout or b"{}")
    except ValueError as e:
        raise MediaProcessingError("ffprobe returned invalid JSON") from e
    if not isinstance(data, dict):
        raise MediaProcessingError("ffprobe returned unexpected JSON")

    streams = data.get("streams") or []
    if not isinstance(streams, list):
        raise MediaProcessingError("ffprobe returned unexpected JSON")
    if not streams:
        raise MissingStreamDataError("Missing video stream data")

    first = streams[0]
    if not isinstance(first, dict):
        raise MediaProcessingError("ffprobe returned unexpected JSON")
    try:
        width = float(first.get("width") or 0)
        height = float(first.get("height") or 0)
    except (TypeError, ValueError) as e:
        raise MediaProcessingError("ffprobe returned non-numeric dimensions") from e

    aspect = classify_aspect_ratio(width, height)
    logger.info("Probed %s: %sx%s -> %s", file_path, width, height, aspect)
    return aspect


def process_video_for_fast_start(
    file_path: str | Path,
    ffmpeg_path: str = "ffmpeg",
    timeout: float = 60 * 30,
) -> str:
    """Remux to <file_path>.processing with metadata at the front. Streams are copied, not re-encoded."""
    output_path = f"{file_path}{PROCESSING_SUFFIX}"
    cmd = [
        ffmpeg_path,
        "-i", str(file_path),
        "-c", "copy",
        "-movflags", "faststart",
        "-f", "mp4",
        output_path,
    ]
    _run(cmd, timeout)
    logger.info("Fast start rewrite completed for %s", file_path)
    return output_path
