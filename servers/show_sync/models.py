"""
Pydantic models for show data structures.

These models define the core data types used throughout the pipeline:
- City: Fixed city label of a source site
- Show: A single live-music show with all catalog fields
- DedupeResult: Result of deduplication with the dropped identity keys
- CrawlResult: Shows collected by the pagination crawler
- SyncStats: Outcome counts of a store sync
- RunState / RunResult: Top-level run state machine and its outcome
"""

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

DEFAULT_GENRE = "General"
DEFAULT_VENUE = "TBA"
DEFAULT_TIME = "TBA"
MAX_GENRES = 3
MAX_DESCRIPTION_LENGTH = 500


class City(str, Enum):
    """Cities served by the source sites."""

    KELOWNA = "Kelowna"
    NELSON = "Nelson"


class Show(BaseModel):
    """Represents a single show as stored in the "shows" collection."""

    model_config = ConfigDict(populate_by_name=True)

    # Core show info
    title: str = Field(min_length=1)
    artist: str = ""  # mirrors title at creation time
    description: str = ""

    # Location
    venue: str = DEFAULT_VENUE
    venue_address: str = Field(default="", alias="venueAddress")
    city: City

    # Timing
    date: dt.date
    time: str = DEFAULT_TIME  # free-form, e.g. "8:00 pm"
    date_estimated: bool = Field(default=False, alias="dateEstimated")

    # Classification
    genre: list[str] = Field(
        default_factory=lambda: [DEFAULT_GENRE], min_length=1, max_length=MAX_GENRES
    )

    # Links
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")

    # Store metadata
    is_public: bool = Field(default=True, alias="isPublic")
    id: Optional[str] = Field(default=None, alias="_id")

    @field_validator("description")
    @classmethod
    def _truncate_description(cls, value: str) -> str:
        return value[:MAX_DESCRIPTION_LENGTH]

    @model_validator(mode="after")
    def _default_artist(self) -> "Show":
        if not self.artist:
            self.artist = self.title
        return self

    @property
    def dedup_key(self) -> str:
        """Key used to collapse repeated listings within one run."""
        return f"{self.title}|{self.venue}|{self.date.isoformat()}"

    @property
    def identity_key(self) -> tuple[str, str, str, str]:
        """(title, venue, date, city) tuple identifying a show in the store."""
        return (self.title, self.venue, self.date.isoformat(), self.city.value)

    @property
    def has_generic_genre(self) -> bool:
        return self.genre == [DEFAULT_GENRE]

    def identity_filter(self) -> dict[str, str]:
        """Store query filter matching this show's identity key."""
        title, venue, date, city = self.identity_key
        return {"title": title, "venue": venue, "date": date, "city": city}

    def to_document(self) -> dict[str, Any]:
        """Serialize for the record store (camelCase, always public)."""
        document = self.model_dump(
            mode="json", by_alias=True, exclude={"id"}, exclude_none=True
        )
        document["isPublic"] = True
        return document


class DedupeResult(BaseModel):
    """Result of deduplication with the keys of the dropped records."""

    shows: list[Show]
    original_count: int
    duplicates_removed: int
    dropped_keys: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def dedup_rate(self) -> float:
        """Percentage of shows that were duplicates."""
        if self.original_count == 0:
            return 0.0
        return self.duplicates_removed / self.original_count * 100


class CrawlResult(BaseModel):
    """Shows collected across the listing pages of one site."""

    shows: list[Show] = Field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: str = ""


class SyncStats(BaseModel):
    """Outcome counts of one sync against the record store."""

    added: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0


class RunState(str, Enum):
    """States of a single site run."""

    FETCHING = "fetching"
    EXTRACTING = "extracting"
    ENRICHING = "enriching"
    DEDUPLICATING = "deduplicating"
    FILTERING = "filtering"
    SYNCING = "syncing"
    DONE = "done"
    FAILED = "failed"


class RunResult(BaseModel):
    """Outcome of one site run."""

    site: str
    city: City
    state: RunState
    stats: Optional[SyncStats] = None
    error: Optional[str] = None

    # Pipeline counters
    crawled: int = 0
    enriched: int = 0
    duplicates_removed: int = 0
    past_shows_removed: int = 0

    started_at: dt.datetime
    finished_at: Optional[dt.datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE
