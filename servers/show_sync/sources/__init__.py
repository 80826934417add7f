"""
Source-site access and extraction.

- http: PageFetcher (one GET per URL, no retries)
- url_validator: fetch policy for scraped URLs
- extractor: EventExtractor (listing, detail and link-following modes)
- fields / genres: ordered fallback rules per field
- text: HTML-to-text normalization
"""

from .extractor import EventExtractor, find_event_blocks
from .genres import extract_genres
from .http import PageFetcher
from .text import clean_text
from .url_validator import validate_source_url

__all__ = [
    "EventExtractor",
    "PageFetcher",
    "clean_text",
    "extract_genres",
    "find_event_blocks",
    "validate_source_url",
]
