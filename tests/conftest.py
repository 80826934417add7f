"""Shared pytest fixtures for show sync tests."""

import datetime as dt

import pytest

from servers.show_sync.config.settings import RunSettings, StoreSettings
from servers.show_sync.config.sites import KELOWNA, NELSON, SiteConfig
from servers.show_sync.models import City, Show

from .factories import TODAY, FakeSite, InMemoryStore

# -- Fixtures -------------------------------------------------------------------


@pytest.fixture
def today() -> dt.date:
    """Fixed run day."""
    return TODAY


@pytest.fixture
def kelowna() -> SiteConfig:
    return KELOWNA


@pytest.fixture
def nelson() -> SiteConfig:
    return NELSON


@pytest.fixture
def fast_settings() -> RunSettings:
    """Run settings with every delay disabled."""
    return RunSettings(page_delay=0)


@pytest.fixture
def store_settings() -> StoreSettings:
    return StoreSettings(
        base_url="https://store.example.com/api",
        api_key="test-key",
        project_id="project-123",
    )


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def sample_show() -> Show:
    """Provide a sample Kelowna show."""
    return Show(
        title="The Midnight Ramblers",
        venue="Fernando's Pub",
        city=City.KELOWNA,
        date=dt.date(2025, 11, 1),
        time="8:00 pm",
        genre=["Rock", "Blues"],
        source_url="https://livemusickelowna.ca/event/midnight-ramblers/",
    )


@pytest.fixture
def sample_shows() -> list[Show]:
    """Provide shows including a listing repeated across pages."""
    return [
        Show(
            title="Jazz Night",
            venue="Micro Bar",
            city=City.KELOWNA,
            date=dt.date(2025, 11, 2),
            genre=["Jazz"],
        ),
        Show(
            title="Open Mic",
            venue="Streetside",
            city=City.KELOWNA,
            date=dt.date(2025, 11, 3),
        ),
        Show(
            title="Jazz Night",
            venue="Micro Bar",
            city=City.KELOWNA,
            date=dt.date(2025, 11, 2),
            genre=["Swing"],  # Same key, different genre
        ),
        Show(
            title="Jazz Night",
            venue="Micro Bar",
            city=City.KELOWNA,
            date=dt.date(2025, 11, 9),
        ),
    ]
