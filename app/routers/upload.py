import os

from fastapi import APIRouter, Depends, File, UploadFile, status

from app.core.config import settings
from app.core.deps import get_media_store, require_role
from app.core.errors import ValidationError
from app.models.user import User
from app.schemas.common import MediaItem
from app.schemas.upload import MediaUploadResponse
from app.services.media_input import PendingUpload
from app.services.media_store import ALLOWED_EXTENSIONS, MediaStore, upload_all

router = APIRouter(prefix="/products", tags=["Upload"])

MEDIA_FOLDERS = {"image": "products/images", "video": "products/videos"}


@router.post(
    "/upload-media",
    response_model=MediaUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload product media",
    description="multipart/form-data, field `media`, up to 10 files of 50MB. "
    "Images: jpeg, jpg, png, gif. Videos: mp4, mov, avi, mkv, webm. All files are stored or none.",
)
async def upload_media(
    media: list[UploadFile] = File(...),
    _user: User = Depends(require_role("seller", "admin")),
    store: MediaStore = Depends(get_media_store),
):
    if not media:
        raise ValidationError("No files uploaded")
    if len(media) > settings.MAX_UPLOAD_FILES:
        raise ValidationError(f"Too many files (max {settings.MAX_UPLOAD_FILES})")

    pending = []
    for file in media:
        ext = os.path.splitext(file.filename or "")[1].lower().lstrip(".")
        if ext not in ALLOWED_EXTENSIONS["image"] | ALLOWED_EXTENSIONS["video"]:
            raise ValidationError("Unsupported file type")

        if file.size and file.size > settings.MAX_UPLOAD_SIZE:
            raise ValidationError("File too large (max 50MB)")
        content = await file.read()
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError("File too large (max 50MB)")

        kind = "video" if (file.content_type or "").startswith("video") else "image"
        pending.append(PendingUpload(payload=content, kind=kind, filename=file.filename))

    uploaded = await upload_all(store, pending, MEDIA_FOLDERS)
    return MediaUploadResponse(media=[MediaItem(**d.to_dict()) for d in uploaded])
