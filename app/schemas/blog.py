import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.schemas.common import MediaItem


class BlogCreateRequest(BaseModel):
    author: str | None = None
    title: str
    content: str
    date: datetime | None = None
    images: Any = None


class BlogItem(BaseModel):
    id: uuid.UUID
    author: str
    title: str
    content: str
    image: str = ""
    media: list[MediaItem] = []
    date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class BlogResponse(BaseModel):
    success: bool = True
    blog: BlogItem


class BlogListResponse(BaseModel):
    success: bool = True
    blogs: list[BlogItem]
