"""
Idempotent sync of shows into the record store.

For each show, in order: look up a stored record with the same
(title, venue, date, city); if there is one, overwrite it with the full
new document, otherwise insert the show as a new public record. A failing
store call for one show is logged and counted as skipped, and the loop
moves on.

With batch_lookup enabled, identities are resolved up front with one query
per city instead of one query per show; if that query fails the engine
falls back to per-show lookups.
"""

from collections import defaultdict
from typing import Any, Optional

import structlog
from structlog.typing import FilteringBoundLogger

from .errors import StoreError
from .models import Show, SyncStats
from .store import RecordStore

IdentityKey = tuple[str, str, str, str]

ADDED = "added"
UPDATED = "updated"


def identity_of(document: dict[str, Any]) -> IdentityKey:
    """Identity key of a stored document."""
    return (
        str(document.get("title", "")),
        str(document.get("venue", "")),
        str(document.get("date", "")),
        str(document.get("city", "")),
    )


def inserted_id(body: dict[str, Any]) -> Optional[str]:
    """Pull the new record's _id out of an insert response, if present."""
    if body.get("_id"):
        return str(body["_id"])
    data = body.get("data")
    if isinstance(data, dict) and data.get("_id"):
        return str(data["_id"])
    return None


class SyncEngine:
    """Upsert shows into the store one at a time."""

    def __init__(
        self,
        store: RecordStore,
        collection: str = "shows",
        batch_lookup: bool = False,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        self.store = store
        self.collection = collection
        self.batch_lookup = batch_lookup
        self.log = logger or structlog.get_logger(__name__)

    async def sync(self, shows: list[Show]) -> SyncStats:
        """Insert or update every show.

        Returns:
            SyncStats with added/updated/skipped counts and the total
        """
        stats = SyncStats(total=len(shows))
        index = await self._load_identity_index(shows) if self.batch_lookup else None

        for show in shows:
            try:
                outcome = await self._upsert(show, index)
            except StoreError as e:
                stats.skipped += 1
                self.log.error(
                    "sync_item_failed",
                    title=show.title,
                    date=show.date.isoformat(),
                    operation=e.operation,
                    error=str(e),
                )
                continue

            if outcome == ADDED:
                stats.added += 1
            else:
                stats.updated += 1

        self.log.info("sync_finished", **stats.model_dump())
        return stats

    async def _upsert(self, show: Show, index: Optional[dict[IdentityKey, dict]]) -> str:
        if index is not None:
            existing = index.get(show.identity_key)
        else:
            existing = await self._find_existing(show)

        document = show.to_document()

        if existing:
            store_id = existing.get("_id")
            if not store_id:
                raise StoreError("update", "stored record has no _id")
            await self.store.update(self.collection, {"_id": store_id}, document)
            show.id = str(store_id)
            self.log.debug("show_updated", title=show.title, id=show.id)
            return UPDATED

        body = await self.store.insert(self.collection, document)
        show.id = inserted_id(body)
        if index is not None:
            index[show.identity_key] = {**document, "_id": show.id}
        self.log.debug("show_added", title=show.title, id=show.id)
        return ADDED

    async def _find_existing(self, show: Show) -> Optional[dict[str, Any]]:
        matches = await self.store.query(self.collection, show.identity_filter())
        return matches[0] if matches else None

    async def _load_identity_index(
        self, shows: list[Show]
    ) -> Optional[dict[IdentityKey, dict]]:
        """One query per city covering every date in the batch."""
        dates_by_city: dict[str, set[str]] = defaultdict(set)
        for show in shows:
            dates_by_city[show.city.value].add(show.date.isoformat())

        index: dict[IdentityKey, dict] = {}
        for city, dates in dates_by_city.items():
            query = {"city": city, "date": {"$in": sorted(dates)}}
            try:
                documents = await self.store.query(self.collection, query)
            except StoreError as e:
                self.log.warning("identity_batch_lookup_failed", city=city, error=str(e))
                return None
            for document in documents:
                index.setdefault(identity_of(document), document)

        self.log.debug("identity_index_loaded", records=len(index))
        return index
