# listing_sync/models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain.types import ListingSource, StandardStatus, SyncStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# -----------------------------
# Canonical store
# -----------------------------
class CanonicalListingRow(Base):
    __tablename__ = "canonical_listings"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    primary_source: Mapped[ListingSource] = mapped_column(Enum(ListingSource), index=True)
    # sorted list of ListingSource values
    sources_json: Mapped[str] = mapped_column(Text, default="[]")
    standard_status: Mapped[StandardStatus] = mapped_column(
        Enum(StandardStatus), default=StandardStatus.unknown, index=True
    )

    list_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    close_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    original_price: Mapped[float | None] = mapped_column(Float, nullable=True)

    street_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    street_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(40), nullable=True)
    city: Mapped[str | None] = mapped_column(String(80), nullable=True)
    state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    unparsed_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_key: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    beds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    baths: Mapped[float | None] = mapped_column(Float, nullable=True)
    baths_full: Mapped[int | None] = mapped_column(Integer, nullable=True)
    baths_half: Mapped[int | None] = mapped_column(Integer, nullable=True)
    living_area_sqft: Mapped[float | None] = mapped_column(Float, nullable=True)
    lot_size_sqft: Mapped[float | None] = mapped_column(Float, nullable=True)
    lot_size_acres: Mapped[float | None] = mapped_column(Float, nullable=True)
    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)

    property_type: Mapped[str | None] = mapped_column(String(80), nullable=True)
    property_sub_type: Mapped[str | None] = mapped_column(String(80), nullable=True)
    subdivision: Mapped[str | None] = mapped_column(String(255), nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(String(255), nullable=True)

    mls_number: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)
    listing_id: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)

    list_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    close_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    days_on_market: Mapped[int | None] = mapped_column(Integer, nullable=True)
    modification_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    photos_json: Mapped[str] = mapped_column(Text, default="[]")

    garage_spaces: Mapped[float | None] = mapped_column(Float, nullable=True)
    pool_features: Mapped[str | None] = mapped_column(Text, nullable=True)
    elementary_school: Mapped[str | None] = mapped_column(String(255), nullable=True)
    middle_school: Mapped[str | None] = mapped_column(String(255), nullable=True)
    high_school: Mapped[str | None] = mapped_column(String(255), nullable=True)
    school_district: Mapped[str | None] = mapped_column(String(255), nullable=True)
    public_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    list_agent_mls_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    list_office_mls_id: Mapped[str | None] = mapped_column(String(80), nullable=True)

    # {"MLS": {...}, "SEARCH_API": {...}}; never returned to the API unless raw=true
    raw_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ListingSourceId(Base):
    """One row per (source, native id) that contributed to a canonical listing."""

    __tablename__ = "listing_source_ids"
    __table_args__ = (UniqueConstraint("source", "native_id", name="uq_listing_source_native"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    listing_id: Mapped[str] = mapped_column(String(255), ForeignKey("canonical_listings.id"), index=True)
    source: Mapped[ListingSource] = mapped_column(Enum(ListingSource), index=True)
    native_id: Mapped[str] = mapped_column(String(255))


class ListingMedia(Base):
    __tablename__ = "listing_media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    media_key: Mapped[str] = mapped_column(String(255), unique=True)
    resource_record_key: Mapped[str] = mapped_column(String(255), index=True)
    media_url: Mapped[str] = mapped_column(Text)
    media_category: Mapped[str | None] = mapped_column(String(80), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(80), nullable=True)
    order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    modification_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# -----------------------------
# Sync checkpoints
# -----------------------------
class SyncCheckpoint(Base):
    """
    One row per sync type ("properties", "media").
    Created on first run, only ever mutated by the sync engine, never deleted.
    """

    __tablename__ = "sync_checkpoints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sync_type: Mapped[str] = mapped_column(String(40), unique=True)

    last_sync_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_status: Mapped[SyncStatus | None] = mapped_column(Enum(SyncStatus), nullable=True)
    last_sync_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    properties_synced: Mapped[int] = mapped_column(Integer, default=0)
    media_synced: Mapped[int] = mapped_column(Integer, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
