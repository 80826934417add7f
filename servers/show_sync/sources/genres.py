"""
Genre extraction policy.

Used by both extraction modes and on its own by the enrichment pass:
1. Collect terms from an "Event Category" section (definition list,
   category container, or plain labeled text)
2. Otherwise fall back to rel="category tag" anchors
3. Drop noise terms ("event", "calendar", ...) case-insensitively
4. Keep at most 3 terms; an empty result becomes ["General"]
"""

import re
from typing import Callable, Union

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag

from ..models import DEFAULT_GENRE, MAX_GENRES
from .text import clean_text

GenreRule = Callable[[Tag], list[str]]

EVENT_CATEGORY_LABEL = re.compile(r"Event Categor(?:y|ies)", re.IGNORECASE)
EVENT_CATEGORY_TEXT = re.compile(r"Event Categor(?:y|ies)\s*:?\s*([^<]+)", re.IGNORECASE)

# A term containing any of these is navigation/taxonomy noise, not a genre
NOISE_TERMS = ("event", "events", "calendar", "venue", "upcoming")

# How far past a plain-text label to look for category links
LABEL_SNIPPET_LENGTH = 500

TERM_SEPARATORS = re.compile(r"[,/]")


def _split_terms(text: str) -> list[str]:
    return [term.strip() for term in TERM_SEPARATORS.split(text) if len(term.strip()) > 1]


def _anchor_texts(element: Tag) -> list[str]:
    return [text for text in (clean_text(a) for a in element.select("a")) if text]


def _within(element: PageElement, root: Tag) -> bool:
    return any(parent is root for parent in element.parents)


def from_definition_list(root: Tag) -> list[str]:
    """<dt>Event Category:</dt><dd><a>Rock</a>, <a>Blues</a></dd>"""
    for label in root.select("dt"):
        if not EVENT_CATEGORY_LABEL.search(clean_text(label)):
            continue
        value = label.find_next_sibling("dd")
        if value is None:
            continue
        terms = _anchor_texts(value) or _split_terms(clean_text(value))
        if terms:
            return terms
    return []


def from_category_container(root: Tag) -> list[str]:
    """<div class="tribe-events-event-categories"><a>Rock</a></div>"""
    for container in root.select('[class*="event-categories"]'):
        terms = _anchor_texts(container) or _split_terms(clean_text(container))
        if terms:
            return terms
    return []


def from_labeled_text(root: Tag) -> list[str]:
    """"Event Categories" followed by links, or "Event Categories: Rock, Blues"."""
    for label in root.find_all(string=EVENT_CATEGORY_LABEL):
        terms: list[str] = []
        scanned = 0
        for element in label.next_elements:
            if not _within(element, root):
                break
            if isinstance(element, Tag) and element.name == "a":
                text = clean_text(element)
                if text:
                    terms.append(text)
            elif isinstance(element, NavigableString):
                scanned += len(element)
                if scanned > LABEL_SNIPPET_LENGTH:
                    break
        if terms:
            return terms

        match = EVENT_CATEGORY_TEXT.search(str(label))
        if match:
            plain = clean_text(match.group(1))
            if plain and len(plain) < 200:
                terms = _split_terms(plain)
                if terms:
                    return terms
    return []


def from_category_tags(root: Tag) -> list[str]:
    """<a rel="category tag">Rock</a> anywhere in the document."""
    return [
        text
        for text in (clean_text(a) for a in root.select('a[rel~="category"][rel~="tag"]'))
        if text
    ]


GENRE_RULES: list[GenreRule] = [
    from_definition_list,
    from_category_container,
    from_labeled_text,
    from_category_tags,
]


def is_noise(term: str) -> bool:
    lowered = term.lower()
    return any(noise in lowered for noise in NOISE_TERMS)


def finalize_genres(terms: list[str]) -> list[str]:
    """Filter noise and cap the list, defaulting to ["General"]."""
    kept = [term for term in terms if not is_noise(term)]
    return kept[:MAX_GENRES] or [DEFAULT_GENRE]


def extract_genres(source: Union[str, Tag]) -> list[str]:
    """Apply the genre policy to an HTML document or parsed element.

    The first rule that collects any terms decides; its terms are filtered
    and the result is never empty.
    """
    root = BeautifulSoup(source, "html.parser") if isinstance(source, str) else source

    terms: list[str] = []
    for rule in GENRE_RULES:
        terms = rule(root)
        if terms:
            break

    return finalize_genres(terms)
