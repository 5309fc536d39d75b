from pydantic import BaseModel


class MediaItem(BaseModel):
    external_id: str
    url: str
    kind: str = "image"


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


def split_tags(value):
    """Accept tags as a comma-separated string or a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return value
