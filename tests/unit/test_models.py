"""Tests for show data models."""

import datetime as dt

import pytest
from pydantic import ValidationError

from servers.show_sync.models import (
    City,
    DedupeResult,
    RunResult,
    RunState,
    Show,
    SyncStats,
)


class TestShow:
    """Tests for the Show model."""

    def test_defaults(self):
        """Unset fields take the catalog defaults."""
        show = Show(title="Open Mic", city=City.NELSON, date=dt.date(2025, 11, 3))

        assert show.artist == "Open Mic"
        assert show.venue == "TBA"
        assert show.time == "TBA"
        assert show.genre == ["General"]
        assert show.venue_address == ""
        assert show.is_public is True
        assert show.date_estimated is False
        assert show.id is None

    def test_requires_title(self):
        """Empty titles are rejected."""
        with pytest.raises(ValidationError):
            Show(title="", city=City.KELOWNA, date=dt.date(2025, 11, 3))

    def test_genre_length_bounds(self):
        """Genre lists must hold one to three entries."""
        with pytest.raises(ValidationError):
            Show(title="X", city=City.KELOWNA, date=dt.date(2025, 11, 3), genre=[])
        with pytest.raises(ValidationError):
            Show(
                title="X",
                city=City.KELOWNA,
                date=dt.date(2025, 11, 3),
                genre=["Rock", "Blues", "Jazz", "Folk"],
            )

    def test_description_truncated(self):
        """Descriptions longer than 500 characters are cut."""
        show = Show(
            title="X", city=City.KELOWNA, date=dt.date(2025, 11, 3), description="a" * 800
        )
        assert len(show.description) == 500

    def test_accepts_camel_case_aliases(self):
        """Stored documents can be loaded back by alias."""
        show = Show.model_validate(
            {
                "title": "X",
                "city": "Kelowna",
                "date": "2025-11-03",
                "venueAddress": "123 Bernard Ave",
                "sourceUrl": "https://livemusickelowna.ca/event/x/",
                "_id": "rec-9",
            }
        )
        assert show.venue_address == "123 Bernard Ave"
        assert show.source_url == "https://livemusickelowna.ca/event/x/"
        assert show.id == "rec-9"

    def test_keys(self, sample_show: Show):
        """Dedup key omits the city, identity key includes it."""
        assert sample_show.dedup_key == "The Midnight Ramblers|Fernando's Pub|2025-11-01"
        assert sample_show.identity_key == (
            "The Midnight Ramblers",
            "Fernando's Pub",
            "2025-11-01",
            "Kelowna",
        )
        assert sample_show.identity_filter() == {
            "title": "The Midnight Ramblers",
            "venue": "Fernando's Pub",
            "date": "2025-11-01",
            "city": "Kelowna",
        }

    def test_has_generic_genre(self, sample_show: Show):
        assert sample_show.has_generic_genre is False
        generic = Show(title="X", city=City.KELOWNA, date=dt.date(2025, 11, 3))
        assert generic.has_generic_genre is True

    def test_to_document(self, sample_show: Show):
        """Documents are camelCase, JSON-safe and always public."""
        sample_show.is_public = False
        sample_show.id = "rec-1"

        document = sample_show.to_document()

        assert document["isPublic"] is True
        assert document["date"] == "2025-11-01"
        assert document["city"] == "Kelowna"
        assert document["sourceUrl"] == "https://livemusickelowna.ca/event/midnight-ramblers/"
        assert document["dateEstimated"] is False
        assert "_id" not in document
        assert "id" not in document
        assert "imageUrl" not in document  # None values are omitted


class TestDedupeResult:
    """Tests for DedupeResult."""

    def test_dedup_rate(self, sample_show: Show):
        result = DedupeResult(
            shows=[sample_show], original_count=4, duplicates_removed=1, dropped_keys=["k"]
        )
        assert result.dedup_rate == 25.0

    def test_dedup_rate_empty(self):
        result = DedupeResult(shows=[], original_count=0, duplicates_removed=0)
        assert result.dedup_rate == 0.0
        assert "dedup_rate" in result.model_dump()


class TestRunResult:
    """Tests for RunResult."""

    def test_succeeded_only_when_done(self):
        started = dt.datetime(2025, 10, 15, 12, 0, tzinfo=dt.timezone.utc)
        done = RunResult(
            site="kelowna",
            city=City.KELOWNA,
            state=RunState.DONE,
            stats=SyncStats(added=1, total=1),
            started_at=started,
        )
        failed = RunResult(
            site="kelowna", city=City.KELOWNA, state=RunState.FAILED, started_at=started
        )

        assert done.succeeded is True
        assert failed.succeeded is False
