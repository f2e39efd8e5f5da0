# listing_sync/service_layer/reconcile.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.ingestion.transform import media_from_mls, source_ref, transform
from ..adapters.repos.listings import ListingRepository
from ..adapters.repos.media import MediaRepository
from ..config import settings
from ..domain.address import key_strength
from ..domain.dedupe import MIN_ADDRESS_KEY_PARTS, duplicate_score
from ..domain.merge import merge_listings, source_priority, union_urls
from ..domain.types import CanonicalListing, RawListing
from ..errors import PersistenceError, RecordError, RecordTransformError

log = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RecordOutcome:
    action: str
    listing_id: str | None = None
    matched_via: str | None = None
    score: float | None = None
    error: RecordError | None = None


@dataclass
class BatchReport:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: list[RecordError] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.errors)

    @property
    def synced(self) -> int:
        """Records that actually changed the store."""
        return self.created + self.updated

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.unchanged + self.skipped

    def record(self, outcome: RecordOutcome) -> None:
        if outcome.action == CREATED:
            self.created += 1
        elif outcome.action == UPDATED:
            self.updated += 1
        elif outcome.action == UNCHANGED:
            self.unchanged += 1
        elif outcome.error is not None:
            self.errors.append(outcome.error)

    def absorb(self, other: "BatchReport") -> None:
        self.created += other.created
        self.updated += other.updated
        self.unchanged += other.unchanged
        self.errors.extend(other.errors)

    def as_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "errors": [{"source_ref": e.source_ref, "error": str(e)} for e in self.errors[:50]],
        }


class Reconciler:
    """
    transform -> lookup -> score -> merge or create -> upsert, one record at a time.

    Every record runs inside its own SAVEPOINT, so a bad record rolls back alone
    and the surrounding page keeps going. Committing is the caller's job.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        threshold: float | None = None,
        retain_raw: bool | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session = session
        self.listings = ListingRepository(session)
        self.media = MediaRepository(session)
        self.threshold = float(settings.DEDUPE_THRESHOLD if threshold is None else threshold)
        self.retain_raw = settings.RETAIN_RAW_PAYLOADS if retain_raw is None else bool(retain_raw)
        self._now = now

    # -----------------------------
    # Lookup
    # -----------------------------
    async def find_match(self, candidate: CanonicalListing) -> tuple[CanonicalListing | None, str | None]:
        """
        Identity first, then evidence:
          canonical id -> any source id -> MLS number -> address key
        """
        existing = await self.listings.get(candidate.id)
        if existing is not None:
            return existing, "id"

        for source, native_id in candidate.source_ids.items():
            if not native_id:
                continue
            existing = await self.listings.find_by_source_id(source, native_id)
            if existing is not None:
                return existing, "source_id"

        if candidate.mls_number:
            existing = await self.listings.find_by_mls_number(candidate.mls_number)
            if existing is not None:
                return existing, "mls_number"

        if key_strength(candidate.address_key) >= MIN_ADDRESS_KEY_PARTS:
            same_address = await self.listings.find_by_address_key(candidate.address_key or "")
            if same_address:
                best = max(same_address, key=lambda x: duplicate_score(candidate, x))
                return best, "address_key"

        return None, None

    # -----------------------------
    # Merge
    # -----------------------------
    def merge_into(self, existing: CanonicalListing, incoming: CanonicalListing) -> CanonicalListing:
        """
        Stronger (or equal) source becomes primary. The result always keeps the
        existing id, its photo order and its last_updated; the incoming source's
        raw payload replaces only its own namespace.
        """
        if source_priority(incoming.primary_source) <= source_priority(existing.primary_source):
            merged = merge_listings(incoming, existing)
        else:
            merged = merge_listings(existing, incoming)

        merged = replace(
            merged,
            id=existing.id,
            photos=union_urls(existing.photos, merged.photos),
            raw=dict(merged.raw),
            last_updated=existing.last_updated,
        )
        src = incoming.primary_source
        if self.retain_raw and src in incoming.raw:
            merged.raw[src] = incoming.raw[src]
        return merged

    async def _apply(self, candidate: CanonicalListing) -> RecordOutcome:
        existing, via = await self.find_match(candidate)

        score: float | None = None
        if existing is not None:
            score = duplicate_score(candidate, existing)
            if via == "address_key" and score < self.threshold:
                # same street address, but the evidence says a different listing
                existing, via = None, None
            elif score < self.threshold:
                log.warning(
                    "merging %s into %s on %s despite low score %.2f",
                    candidate.id,
                    existing.id,
                    via,
                    score,
                )

        if existing is None:
            candidate.last_updated = self._now()
            await self.listings.upsert(candidate)
            return RecordOutcome(CREATED, listing_id=candidate.id, score=score)

        merged = self.merge_into(existing, candidate)
        if merged == existing:
            return RecordOutcome(UNCHANGED, listing_id=existing.id, matched_via=via, score=score)

        merged.last_updated = self._now()
        await self.listings.upsert(merged)
        return RecordOutcome(UPDATED, listing_id=merged.id, matched_via=via, score=score)

    # -----------------------------
    # Entry points
    # -----------------------------
    async def reconcile_record(self, raw: RawListing) -> RecordOutcome:
        ref = source_ref(raw)
        try:
            async with self.session.begin_nested():
                candidate = transform(raw, retain_raw=self.retain_raw)
                return await self._apply(candidate)
        except RecordError as e:
            e.source_ref = e.source_ref or ref
            log.warning("skipping %s record %s: %s", raw.source.value, e.source_ref, e)
            return RecordOutcome(SKIPPED, error=e)
        except SQLAlchemyError as e:
            err = PersistenceError(f"{type(e).__name__}: {e}", source_ref=ref)
            log.warning("skipping %s record %s: %s", raw.source.value, ref, err)
            return RecordOutcome(SKIPPED, error=err)
        except Exception as e:
            err = RecordTransformError(f"{type(e).__name__}: {e}", source_ref=ref)
            log.warning("skipping %s record %s: %s", raw.source.value, ref, err)
            return RecordOutcome(SKIPPED, error=err)

    async def reconcile_batch(self, raws: list[RawListing]) -> BatchReport:
        report = BatchReport()
        for raw in raws:
            report.record(await self.reconcile_record(raw))
        return report

    async def reconcile_media(self, payload: dict[str, Any]) -> RecordOutcome:
        """Upsert one Media record and union its URL into the owning listing's photos."""
        ref = payload.get("MediaKey") if isinstance(payload, dict) else None
        try:
            async with self.session.begin_nested():
                item = media_from_mls(payload)
                _, action = await self.media.upsert(item)
                attached = await self.listings.attach_photo(item.resource_record_key, item.media_url, now=self._now())
                if action == UNCHANGED and attached:
                    action = UPDATED
                return RecordOutcome(action, listing_id=item.resource_record_key)
        except RecordError as e:
            e.source_ref = e.source_ref or ref
            log.warning("skipping media record %s: %s", e.source_ref, e)
            return RecordOutcome(SKIPPED, error=e)
        except SQLAlchemyError as e:
            err = PersistenceError(f"{type(e).__name__}: {e}", source_ref=ref)
            log.warning("skipping media record %s: %s", ref, err)
            return RecordOutcome(SKIPPED, error=err)
        except Exception as e:
            err = RecordTransformError(f"{type(e).__name__}: {e}", source_ref=ref)
            log.warning("skipping media record %s: %s", ref, err)
            return RecordOutcome(SKIPPED, error=err)
