"""Shared helpers for video and thumbnail uploads: media type checks and random asset names."""
import re
import secrets
import shutil
from pathlib import Path
from typing import BinaryIO

VIDEO_CONTENT_TYPES = {"video/mp4"}
THUMBNAIL_CONTENT_TYPES = {"image/jpeg", "image/png"}

# type "/" subtype, RFC 2045 token characters
_MEDIA_TYPE_RE = re.compile(r"^[!#$%&'*+.^_`|~0-9a-z-]+/[!#$%&'*+.^_`|~0-9a-z-]+$")

RANDOM_NAME_BYTES = 32


def parse_media_type(content_type: str | None) -> str | None:
    """Return the lower-cased "type/subtype" without parameters, or None if it can't be parsed."""
    media_type = (content_type or "").split(";")[0].strip().lower()
    if not _MEDIA_TYPE_RE.match(media_type):
        return None
    return media_type


def extension_for(media_type: str) -> str:
    """video/mp4 -> mp4, image/jpeg -> jpeg."""
    return media_type.split("/", 1)[1]


def random_asset_name(media_type: str) -> str:
    """<32 random bytes, base64url without padding>.<ext>"""
    return f"{secrets.token_urlsafe(RANDOM_NAME_BYTES)}.{extension_for(media_type)}"


def build_video_key(prefix: str, media_type: str) -> str:
    return f"{prefix}/{random_asset_name(media_type)}"


def build_video_url(distribution: str, key: str) -> str:
    return f"{distribution.rstrip('/')}/{key}"


def build_asset_url(host: str, port: str, filename: str) -> str:
    return f"http://{host}:{port}/assets/{filename}"


def save_asset(source: BinaryIO, media_type: str, assets_root: str | Path) -> str:
    """Write the upload verbatim under assets_root with a random name. Returns the filename."""
    root = Path(assets_root)
    root.mkdir(parents=True, exist_ok=True)
    filename = random_asset_name(media_type)
    with (root / filename).open("xb") as f:
        shutil.copyfileobj(source, f)
    return filename
