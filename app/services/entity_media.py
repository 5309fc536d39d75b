"""Saving and deleting entities that own stored media.

Every descriptor stored on a Product, Event or Blog is claimed in
``media_assets``; an external id can be claimed once, so deleting one entity
never removes media another entity still shows.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from app.core.errors import ValidationError
from app.models.media_asset import MediaAsset
from app.services.media_input import INVALID_MEDIA_FORMAT, MediaDescriptor, MediaItem, descriptors_of
from app.services.media_store import DeleteOutcome, MediaStore, discard_media

logger = logging.getLogger(__name__)


@dataclass
class DeletionReport:
    entity_id: str
    outcomes: list[DeleteOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> list[DeleteOutcome]:
        return [o for o in self.outcomes if not o.ok]


async def ensure_unclaimed(db: AsyncSession, items: list[MediaItem]) -> None:
    """Reject descriptors repeated in ``items`` or already owned by an entity."""
    ids = [item.external_id for item in items if isinstance(item, MediaDescriptor)]
    seen = set()
    for external_id in ids:
        if external_id in seen:
            raise ValidationError(f"Media {external_id} is listed more than once", kind=INVALID_MEDIA_FORMAT)
        seen.add(external_id)
    if not ids:
        return

    result = await db.execute(select(MediaAsset.external_id).where(MediaAsset.external_id.in_(ids)))
    taken = result.scalars().first()
    if taken is not None:
        raise ValidationError(f"Media {taken} is already in use", kind=INVALID_MEDIA_FORMAT)


async def persist_with_media(db: AsyncSession, store: MediaStore, entity, uploaded: list[MediaDescriptor]):
    """Insert ``entity`` and claim its media; if the write fails, delete the files uploaded for it."""
    db.add(entity)
    try:
        await db.flush()
        db.add_all(
            MediaAsset(external_id=d.external_id, kind=d.kind, owner_type=entity.__tablename__, owner_id=entity.id)
            for d in descriptors_of(entity.media)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        if uploaded:
            logger.error(
                "Saving %s failed, discarding %d uploaded file(s)", type(entity).__name__, len(uploaded)
            )
            await discard_media(store, uploaded)
        raise
    await db.refresh(entity)
    return entity


async def delete_with_media(
    db: AsyncSession,
    store: MediaStore,
    entity,
    dependents: tuple[Executable, ...] = (),
) -> DeletionReport:
    """Delete every stored file of ``entity``, then the entity row and its media claims.

    Each file is attempted even when others fail, and the row is deleted
    regardless. ``dependents`` are extra statements (child rows) run in the
    same commit.
    """
    report = DeletionReport(entity_id=str(entity.id))
    descriptors = descriptors_of(entity.media)
    report.outcomes = list(await asyncio.gather(*(store.delete(d.external_id, d.kind) for d in descriptors)))

    await db.execute(delete(MediaAsset).where(MediaAsset.owner_id == entity.id))
    for statement in dependents:
        await db.execute(statement)
    await db.delete(entity)
    await db.commit()

    if report.failed:
        logger.warning(
            "%s %s deleted, %d of %d media could not be removed: %s",
            type(entity).__name__,
            report.entity_id,
            len(report.failed),
            report.attempted,
            ", ".join(o.external_id for o in report.failed),
        )
    return report
