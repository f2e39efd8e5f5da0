# listing_sync/adapters/repos/media.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import MediaItem
from ...models import ListingMedia

_FIELDS = (
    "resource_record_key",
    "media_url",
    "media_category",
    "media_type",
    "order",
    "caption",
    "modification_timestamp",
)


class MediaRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, media_key: str) -> ListingMedia | None:
        q = select(ListingMedia).where(ListingMedia.media_key == media_key)
        return (await self.session.execute(q)).scalars().first()

    async def for_listing(self, resource_record_key: str) -> list[ListingMedia]:
        q = (
            select(ListingMedia)
            .where(ListingMedia.resource_record_key == resource_record_key)
            .order_by(ListingMedia.order, ListingMedia.id)
        )
        return list((await self.session.execute(q)).scalars().all())

    async def upsert(self, item: MediaItem) -> tuple[ListingMedia, str]:
        """Returns (row, action) with action one of created | updated | unchanged."""
        row = await self.get(item.media_key)
        if row is None:
            row = ListingMedia(media_key=item.media_key)
            self.session.add(row)
            action = "created"
        elif any(getattr(row, f) != getattr(item, f) for f in _FIELDS if f != "modification_timestamp"):
            action = "updated"
        else:
            action = "unchanged"

        for f in _FIELDS:
            setattr(row, f, getattr(item, f))

        await self.session.flush()
        return row, action
