import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_media_store, require_role
from app.core.errors import NotFound
from app.models.blog import Blog
from app.models.user import User
from app.schemas.blog import BlogCreateRequest, BlogItem, BlogListResponse, BlogResponse
from app.schemas.common import MessageResponse
from app.services.entity_media import delete_with_media, ensure_unclaimed, persist_with_media
from app.services.media_input import normalize_media
from app.services.media_store import MediaStore, resolve_media

router = APIRouter(prefix="/blogs", tags=["Blogs"])


@router.post(
    "",
    response_model=BlogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create blog post",
    description="Admin only. The first image becomes the post's main `image`.",
)
async def create_blog(
    body: BlogCreateRequest,
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    items = normalize_media(body.images, "image")
    await ensure_unclaimed(db, items)
    media, uploaded = await resolve_media(store, items, "blogs")

    blog = Blog(
        author=body.author or "Realty Blogger",
        title=body.title,
        content=body.content,
        image=media[0].url if media else "",
        media=[m.to_dict() for m in media],
        date=body.date or datetime.now(timezone.utc),
    )
    await persist_with_media(db, store, blog, uploaded)

    return BlogResponse(blog=BlogItem.model_validate(blog))


@router.get("", response_model=BlogListResponse, summary="All blog posts")
async def list_blogs(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Blog).order_by(Blog.date.desc()))
    return BlogListResponse(blogs=[BlogItem.model_validate(b) for b in result.scalars().all()])


@router.get("/admin/all", response_model=BlogListResponse, summary="All blog posts (admin)")
async def admin_list_blogs(
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Blog).order_by(Blog.created_at.desc()))
    return BlogListResponse(blogs=[BlogItem.model_validate(b) for b in result.scalars().all()])


@router.get("/{blog_id}", response_model=BlogResponse, summary="Blog post")
async def get_blog(blog_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    blog = await db.get(Blog, blog_id)
    if not blog:
        raise NotFound("Blog not found with this ID")
    return BlogResponse(blog=BlogItem.model_validate(blog))


@router.delete("/{blog_id}", response_model=MessageResponse, summary="Delete blog post")
async def delete_blog(
    blog_id: uuid.UUID,
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    blog = await db.get(Blog, blog_id)
    if not blog:
        raise NotFound("Blog not found with this ID")

    await delete_with_media(db, store, blog)
    return MessageResponse(message="Blog deleted successfully")
