"""
Video upload pipeline: buffer to a temp file, pick the storage prefix from the aspect ratio,
rewrite for fast start, push to S3. Both temp files live in one TemporaryDirectory so they
are removed on every exit path.
"""
import logging
import tempfile
from pathlib import Path
from typing import AsyncIterator, BinaryIO

from tubely.config import Settings
from tubely.services.media import (
    ASPECT_LANDSCAPE,
    ASPECT_PORTRAIT,
    get_video_aspect_ratio,
    process_video_for_fast_start,
)
from tubely.services.storage import ObjectStorage
from tubely.services.uploads import build_video_key, build_video_url

logger = logging.getLogger(__name__)

MAX_VIDEO_UPLOAD_BYTES = 10 << 30  # 10 GiB
CHUNK_SIZE = 1024 * 1024  # 1 MB
TEMP_FILENAME = "video-upload.mp4"


class UploadTooLargeError(Exception):
    """Upload exceeded the configured byte limit while being copied."""


def storage_prefix(aspect_ratio: str) -> str:
    if aspect_ratio == ASPECT_LANDSCAPE:
        return "landscape"
    if aspect_ratio == ASPECT_PORTRAIT:
        return "portrait"
    return "other"


def copy_upload(source: BinaryIO, dest: BinaryIO, max_bytes: int = MAX_VIDEO_UPLOAD_BYTES) -> int:
    """Copy in chunks; raises UploadTooLargeError once more than max_bytes have been read."""
    total = 0
    while chunk := source.read(CHUNK_SIZE):
        total += len(chunk)
        if total > max_bytes:
            raise UploadTooLargeError(f"Upload exceeds {max_bytes} bytes")
        dest.write(chunk)
    return total


async def limit_stream(stream: AsyncIterator[bytes], max_bytes: int = MAX_VIDEO_UPLOAD_BYTES) -> AsyncIterator[bytes]:
    """Pass request body chunks through; raises UploadTooLargeError as soon as more than max_bytes arrive."""
    total = 0
    async for chunk in stream:
        total += len(chunk)
        if total > max_bytes:
            raise UploadTooLargeError(f"Upload exceeds {max_bytes} bytes")
        yield chunk


def process_and_store_video(
    source: BinaryIO,
    media_type: str,
    settings: Settings,
    storage: ObjectStorage,
    max_bytes: int = MAX_VIDEO_UPLOAD_BYTES,
) -> str:
    """Run the whole pipeline for one upload and return the public video URL."""
    with tempfile.TemporaryDirectory(prefix="tubely-") as tmp_dir:
        tmp_path = Path(tmp_dir) / TEMP_FILENAME
        with tmp_path.open("wb") as tmp_file:
            size = copy_upload(source, tmp_file, max_bytes)
        logger.info("Buffered %s bytes to %s", size, tmp_path)

        aspect_ratio = get_video_aspect_ratio(
            tmp_path,
            ffprobe_path=settings.ffprobe_path,
            timeout=settings.media_probe_timeout_seconds,
        )
        processed_path = process_video_for_fast_start(
            tmp_path,
            ffmpeg_path=settings.ffmpeg_path,
            timeout=settings.media_process_timeout_seconds,
        )

        key = build_video_key(storage_prefix(aspect_ratio), media_type)
        with open(processed_path, "rb") as processed_file:
            storage.put_object(key, processed_file, media_type)

    return build_video_url(settings.s3_cf_distribution, key)
