"""
Ordered field-extraction rules for event-calendar markup.

Each field has a list of FieldRule (matcher, extractor) pairs tried in the
declared order; the first rule producing an accepted, non-empty value wins.
Matchers are CSS selectors (soupsieve), readers pull the value out of the
matched element. Tables run from the site theme's specific classes to more
generic markup.
"""

import re
from typing import Callable, NamedTuple, Optional, Sequence
from urllib.parse import urljoin

from bs4 import Tag

from .text import clean_text

Reader = Callable[[Tag], Optional[str]]


class FieldRule(NamedTuple):
    """A CSS matcher paired with a reader for the matched element."""

    selector: str
    read: Reader
    accept: Optional[Callable[[str], bool]] = None


def read_text(element: Tag) -> Optional[str]:
    """Normalized text content of an element."""
    return clean_text(element) or None


def read_attr(name: str) -> Reader:
    """Reader returning a stripped attribute value."""

    def reader(element: Tag) -> Optional[str]:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else None

    reader.__name__ = f"read_attr_{name}"
    return reader


def apply_rules(root: Tag, rules: Sequence[FieldRule]) -> Optional[str]:
    """Evaluate rules in order and return the first accepted value.

    A rule whose selector matches nothing, or only yields empty/rejected
    values, falls through to the next rule.
    """
    for rule in rules:
        for element in root.select(rule.selector):
            value = rule.read(element)
            if not value:
                continue
            if rule.accept is not None and not rule.accept(value):
                continue
            return value
    return None


def is_real_image(url: str) -> bool:
    """Reject theme placeholder images."""
    return "placeholder" not in url.lower()


# Clock times such as "8:00 pm" or "@ 7:30PM"
TIME_PATTERNS = [
    re.compile(r"@\s*(\d{1,2}:\d{2}\s*(?:am|pm))", re.IGNORECASE),
    re.compile(r"(\d{1,2}:\d{2}\s*(?:am|pm))", re.IGNORECASE),
]


def extract_time(root: Tag) -> Optional[str]:
    """First clock-time-shaped text within an element."""
    text = clean_text(root)
    for pattern in TIME_PATTERNS:
        match = pattern.search(text)
        if match:
            return re.sub(r"\s+", " ", match.group(1))
    return None


# -- Listing pages -----------------------------------------------------------

# Whole-event containers, most specific first; the first selector that
# matches anything is used exclusively.
BLOCK_SELECTORS = [
    '[class*="tribe-events-calendar-list__event-row"]',
    'div[class*="tribe-common-g-row"][data-event-id]',
    'div[class*="type-tribe_events"]',
    'article[class*="event"], article[class*="upcoming"]',
]

TITLE_RULES = [
    FieldRule('h3[class*="tribe-events-calendar-list__event-title"] a', read_text),
    FieldRule('a[class*="tribe-events-calendar-list__event-title-link"]', read_text),
    FieldRule(
        'h3[class*="event-title"], h3[class*="entry-title"], h2[class*="entry-title"]',
        read_text,
    ),
    FieldRule('a[class*="event-url"], a[class*="tribe-event-url"]', read_text),
]

DATE_RULES = [
    FieldRule("time[datetime]", read_attr("datetime")),
    FieldRule('[class*="tribe-event-date-start"][datetime]', read_attr("datetime")),
    FieldRule('[class*="tribe-events-calendar-list__event-datetime"]', read_text),
    FieldRule('[class*="tribe-event-date-start"]', read_text),
]

VENUE_RULES = [
    FieldRule('[class*="tribe-events-calendar-list__event-venue-title"]', read_text),
    FieldRule('[class*="tribe-event-venue"]', read_text),
    FieldRule('span[class*="venue"]:not([class*="address"])', read_text),
]

VENUE_ADDRESS_RULES = [
    FieldRule('[class*="tribe-events-calendar-list__event-venue-address"]', read_text),
    FieldRule('[class*="tribe-street-address"]', read_text),
    FieldRule('[class*="venue-address"]', read_text),
]

IMAGE_RULES = [
    FieldRule("img[src]", read_attr("src"), accept=is_real_image),
    FieldRule("img[data-src]", read_attr("data-src"), accept=is_real_image),
]

DESCRIPTION_RULES = [
    FieldRule('[class*="tribe-events-calendar-list__event-description"]', read_text),
    FieldRule('[class*="entry-content"]', read_text),
    FieldRule('[class*="entry-summary"]', read_text),
]


def detail_url_rules(is_event_url: Callable[[str], bool], page_url: str) -> list[FieldRule]:
    """Rules locating a listing block's link to its event-detail page.

    Links are matched against the event-URL pattern after resolving them
    against the page they appear on.
    """
    return [
        FieldRule(
            'a[class*="tribe-events-calendar-list__event-title-link"][href]',
            read_attr("href"),
        ),
        FieldRule(
            "a[href]",
            read_attr("href"),
            accept=lambda href: is_event_url(urljoin(page_url, href)),
        ),
    ]


# -- Event-detail pages ------------------------------------------------------

DETAIL_TITLE_RULES = [
    FieldRule('h1[class*="tribe-events-single-event-title"]', read_text),
    FieldRule('h1[class*="entry-title"]', read_text),
]

DETAIL_DATE_RULES = [
    FieldRule("time[datetime]", read_attr("datetime")),
    FieldRule('abbr[class*="tribe-events-start-date"][title]', read_attr("title")),
    FieldRule('dt:-soup-contains("Date") + dd', read_text),
    FieldRule('[class*="tribe-event-date-start"]', read_text),
]

DETAIL_VENUE_RULES = [
    FieldRule('dd[class*="tribe-venue"]:not([class*="location"])', read_text),
    FieldRule('dt:-soup-contains("Venue") + dd', read_text),
    FieldRule('[class*="tribe-venue"]:not([class*="location"])', read_text),
]

DETAIL_VENUE_ADDRESS_RULES = [
    FieldRule('[class*="tribe-street-address"]', read_text),
    FieldRule('address[class*="tribe-events-address"]', read_text),
]

DETAIL_DESCRIPTION_RULES = [
    FieldRule('[class*="tribe-events-single-event-description"]', read_text),
    FieldRule('meta[property="og:description"]', read_attr("content")),
]

DETAIL_IMAGE_RULES = [
    FieldRule('meta[property="og:image"]', read_attr("content"), accept=is_real_image),
]
