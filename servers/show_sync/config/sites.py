"""
Per-site configuration for the event-calendar websites.

Both sites run the same WordPress event-calendar convention, so they share
the extraction rule tables in sources/fields.py and differ only in the
values below.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from ..models import City


class SiteConfig(BaseModel):
    """Everything the pipeline needs to know about one source site."""

    model_config = ConfigDict(frozen=True)

    key: str
    city: City
    base_url: str  # listing page 1, with trailing slash
    page_url_template: str = "{base_url}page/{page}/"
    event_link_pattern: str  # regex matched against absolute event-detail URLs
    next_page_patterns: tuple[str, ...] = Field(default_factory=tuple)
    enrichment_pause: float = 0.5  # seconds between enrichment batches

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc.lower()

    @property
    def root_url(self) -> str:
        parsed = urlparse(self.base_url)
        return f"{parsed.scheme}://{parsed.netloc}/"

    def page_url(self, page: int) -> str:
        """URL of listing page `page` (1-based)."""
        if page <= 1:
            return self.base_url
        return self.page_url_template.format(base_url=self.base_url, page=page)

    def is_event_url(self, url: Optional[str]) -> bool:
        """Check whether a URL points at an individual event page of this site."""
        if not url:
            return False
        return re.search(self.event_link_pattern, url, re.IGNORECASE) is not None

    def has_next_page(self, html: str) -> bool:
        """Check the raw listing text for any "next page" marker."""
        return any(
            re.search(pattern, html, re.IGNORECASE) for pattern in self.next_page_patterns
        )


KELOWNA = SiteConfig(
    key="kelowna",
    city=City.KELOWNA,
    base_url="https://livemusickelowna.ca/events/",
    event_link_pattern=r"^https?://(?:www\.)?livemusickelowna\.ca/event/[^/?#]+",
    next_page_patterns=(
        r'<link[^>]*rel="next"[^>]*href="[^"]*/page/\d+/?"[^>]*>',
        r'<a[^>]*href="[^"]*/page/\d+/?"[^>]*>\s*(?:Next|»|&raquo;)',
        r'<link[^>]*rel="next"',
        r'class="[^"]*next[^"]*"',
    ),
    enrichment_pause=0.5,
)

NELSON = SiteConfig(
    key="nelson",
    city=City.NELSON,
    base_url="https://livemusicnelson.ca/events/",
    event_link_pattern=r"^https?://(?:www\.)?livemusicnelson\.ca/event/[^/?#]+",
    next_page_patterns=(
        r'<a[^>]*href="[^"]*/events/page/\d+/?"[^>]*class="[^"]*next[^"]*"[^>]*>',
        r'<link[^>]*rel="next"[^>]*href="[^"]*/events/page/\d+/?"[^>]*>',
        r'<a[^>]*href="[^"]*/events/page/\d+/?"[^>]*>[^<]*next[^<]*</a>',
    ),
    enrichment_pause=2.0,
)

SITES: dict[str, SiteConfig] = {site.key: site for site in (KELOWNA, NELSON)}


def get_site(key: str) -> SiteConfig:
    """Look up a built-in site by key.

    Raises:
        KeyError: If the key is not configured
    """
    try:
        return SITES[key.lower()]
    except KeyError:
        raise KeyError(f"Unknown site '{key}' (known: {', '.join(SITES)})") from None
