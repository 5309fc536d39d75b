from pydantic import BaseModel

from app.schemas.common import MediaItem


class MediaUploadResponse(BaseModel):
    success: bool = True
    media: list[MediaItem]
