"""
Video metadata (create/list/get/delete) and the two uploads attached to a video:
the MP4 itself (fast start, S3) and a thumbnail image (local assets dir).
"""
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from tubely.auth import get_current_user_id, get_settings
from tubely.config import Settings
from tubely.database import get_db
from tubely.models.video import Video
from tubely.schemas.video import VideoCreate, VideoResponse
from tubely.services.media import MediaProcessingError, MissingStreamDataError
from tubely.services.storage import ObjectStorage, StorageError, get_storage
from tubely.services.uploads import (
    THUMBNAIL_CONTENT_TYPES,
    VIDEO_CONTENT_TYPES,
    build_asset_url,
    parse_media_type,
    save_asset,
)
from tubely.services.video_upload import (
    MAX_VIDEO_UPLOAD_BYTES,
    UploadTooLargeError,
    limit_stream,
    process_and_store_video,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videos", tags=["videos"])

THUMBNAIL_MAX_MEMORY = 10 << 20  # 10 MiB


def valid_video_id(video_id: str) -> str:
    """Path parameter as a canonical UUID string. Declared before auth so a bad ID is 400 even without a token."""
    try:
        return str(uuid.UUID(video_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID")


def _get_video(db: Session, video_id: str) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


def _get_owned_video(db: Session, video_id: str, user_id: str) -> Video:
    video = _get_video(db, video_id)
    if video.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return video


def _reject_oversized_body(request: Request, max_bytes: int) -> None:
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Upload too large",
        )


async def _parse_limited_form(request: Request, max_bytes: int) -> FormData:
    """Multipart parse over a byte-counted body stream, so an undeclared oversized body stops at max_bytes."""
    if not request.headers.get("content-type", "").lower().startswith("multipart/form-data"):
        return FormData()
    parser = MultiPartParser(request.headers, limit_stream(request.stream(), max_bytes))
    try:
        return await parser.parse()
    except UploadTooLargeError:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Upload too large",
        )
    except MultiPartException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


def _save_metadata(db: Session, video: Video) -> Video:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Updating video %s failed", video.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not update video metadata",
        )
    db.refresh(video)
    return video


# ---------- Metadata ----------


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
def create_video(
    body: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a draft video record owned by the caller. Files are attached via the upload endpoints."""
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")
    video = Video(user_id=user_id, title=title, description=(body.description or "").strip() or None)
    db.add(video)
    db.commit()
    db.refresh(video)
    return video


@router.get("", response_model=list[VideoResponse])
def list_videos(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return db.query(Video).filter(Video.user_id == user_id).order_by(Video.created_at.desc()).all()


@router.get("/{video_id}", response_model=VideoResponse)
def get_video(
    video_id: str = Depends(valid_video_id),
    _user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return _get_video(db, video_id)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_video(
    video_id: str = Depends(valid_video_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Owner only. Uploaded objects and thumbnails are left in place."""
    video = _get_owned_video(db, video_id, user_id)
    db.delete(video)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Uploads ----------


@router.post("/{video_id}/upload", response_model=VideoResponse)
async def upload_video(
    request: Request,
    video_id: str = Depends(valid_video_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Upload the MP4 for a video (multipart field "video", part type video/mp4, max 10 GiB).
    Stored in S3 under landscape/, portrait/ or other/ and exposed through the CloudFront URL.
    """
    _reject_oversized_body(request, MAX_VIDEO_UPLOAD_BYTES)
    _get_owned_video(db, video_id, user_id)
    # No connection held while the body streams in and ffprobe/ffmpeg/S3 run
    db.close()

    form = await _parse_limited_form(request, MAX_VIDEO_UPLOAD_BYTES)
    try:
        upload = form.get("video")
        if not isinstance(upload, UploadFile):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not get video file",
            )

        media_type = parse_media_type(upload.headers.get("content-type"))
        if media_type is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unable to parse mimetype")
        if media_type not in VIDEO_CONTENT_TYPES:
            logger.warning("Rejected video upload for %s: %s", video_id, media_type)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only video/mp4 mimetype accepted")

        logger.info("Uploading video %s by user %s", video_id, user_id)
        try:
            url = await run_in_threadpool(
                process_and_store_video, upload.file, media_type, settings, storage, MAX_VIDEO_UPLOAD_BYTES
            )
        except UploadTooLargeError:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Upload too large",
            )
        except MissingStreamDataError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Cannot get video aspect ratio: missing video stream data",
            )
        except MediaProcessingError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to process video",
            )
        except StorageError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to write to storage",
            )
        except OSError:
            logger.exception("Buffering upload for video %s failed", video_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to buffer upload",
            )
    finally:
        await form.close()

    # Re-read: the record may have changed or been deleted while the pipeline ran
    video = _get_video(db, video_id)
    video.video_url = url
    return _save_metadata(db, video)


@router.post("/{video_id}/thumbnail", response_model=VideoResponse)
async def upload_thumbnail(
    request: Request,
    video_id: str = Depends(valid_video_id),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Upload a JPEG or PNG thumbnail (multipart field "thumbnail"); saved under the assets dir."""
    async with request.form(max_part_size=THUMBNAIL_MAX_MEMORY) as form:
        upload = form.get("thumbnail")
        if not isinstance(upload, UploadFile):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to read file",
            )

        video = _get_owned_video(db, video_id, user_id)

        media_type = parse_media_type(upload.headers.get("content-type"))
        if media_type not in THUMBNAIL_CONTENT_TYPES:
            logger.warning("Rejected thumbnail for %s: %s", video.id, media_type)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid media type")

        try:
            filename = await run_in_threadpool(save_asset, upload.file, media_type, settings.assets_root)
        except OSError:
            logger.exception("Saving thumbnail for video %s failed", video.id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not save thumbnail",
            )

    logger.info("Saved thumbnail %s for video %s", filename, video.id)
    video.thumbnail_url = build_asset_url(settings.public_host, settings.port, filename)
    return _save_metadata(db, video)
