import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_media_store, require_role
from app.core.errors import Forbidden, NotFound, ValidationError
from app.models.event import Event
from app.models.shop import Shop
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.event import EventCreateRequest, EventItem, EventListResponse, EventResponse
from app.services.entity_media import delete_with_media, ensure_unclaimed, persist_with_media
from app.services.media_input import normalize_media
from app.services.media_store import MediaStore, resolve_media

router = APIRouter(prefix="/events", tags=["Events"])


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
    description="`images` is a string or a list; raw payloads are uploaded to the `events` folder. "
    "`tags` may be a comma-separated string.",
)
async def create_event(
    body: EventCreateRequest,
    _user: User = Depends(require_role("seller", "admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    if not body.shop_id:
        raise ValidationError("Shop ID is required.")

    shop = await db.get(Shop, body.shop_id)
    if not shop:
        raise ValidationError("Invalid Shop ID.")

    items = normalize_media(body.images, "image")
    await ensure_unclaimed(db, items)
    media, uploaded = await resolve_media(store, items, "events")

    event = Event(
        shop_id=shop.id,
        shop_name=shop.name,
        name=body.name,
        description=body.description,
        category=body.category,
        start_date=body.start_date,
        end_date=body.end_date,
        status=body.status or "Running",
        tags=body.tags,
        original_price=body.original_price or 0,
        discount_price=body.discount_price,
        stock=body.stock,
        media=[m.to_dict() for m in media],
    )
    await persist_with_media(db, store, event, uploaded)

    return EventResponse(event=EventItem.model_validate(event))


@router.get("", response_model=EventListResponse, summary="All events")
async def list_events(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Event).order_by(Event.created_at.desc()))
    return EventListResponse(events=[EventItem.model_validate(e) for e in result.scalars().all()])


@router.get("/admin/all", response_model=EventListResponse, summary="All events (admin)")
async def admin_list_events(
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Event).order_by(Event.created_at.desc()))
    return EventListResponse(events=[EventItem.model_validate(e) for e in result.scalars().all()])


@router.get("/shop/{shop_id}", response_model=EventListResponse, summary="Events of a shop")
async def list_shop_events(shop_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Event).where(Event.shop_id == shop_id).order_by(Event.created_at.desc()))
    return EventListResponse(events=[EventItem.model_validate(e) for e in result.scalars().all()])


@router.delete("/{event_id}", response_model=MessageResponse, summary="Delete event")
async def delete_event(
    event_id: uuid.UUID,
    user: User = Depends(require_role("seller", "admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found with this ID")

    if user.role != "admin":
        shop = await db.get(Shop, event.shop_id)
        if shop is None or shop.owner_id != user.id:
            raise Forbidden("You can only delete events of your own shop")

    await delete_with_media(db, store, event)
    return MessageResponse(message="Event deleted successfully!")
