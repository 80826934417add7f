"""
HTML-to-text normalization for extracted field values.

Strips tags, decodes named and numeric character references, and folds
typographic characters to their plain-text forms so stored values compare
equal across re-scrapes.
"""

import re
from typing import Union

from bs4 import BeautifulSoup, Tag

# Applied after entity decoding
TYPOGRAPHIC_REPLACEMENTS = {
    " ": " ",  # &nbsp;
    "‘": "'",  # &lsquo;
    "’": "'",  # &rsquo;
    "“": '"',  # &ldquo;
    "”": '"',  # &rdquo;
    "–": "-",  # &ndash;
    "—": "-",  # &mdash;
    "…": "...",  # &hellip;
    "©": "(c)",  # &copy;
    "®": "(R)",  # &reg;
    "™": "(TM)",  # &trade;
    "°": "deg",  # &deg;
}

TYPOGRAPHIC_TABLE = str.maketrans(TYPOGRAPHIC_REPLACEMENTS)

WHITESPACE = re.compile(r"\s+")


def clean_text(value: Union[str, Tag, None]) -> str:
    """Convert an HTML fragment or parsed element to normalized plain text.

    Args:
        value: Raw HTML string, BeautifulSoup element, or None

    Returns:
        Text with tags removed, entities decoded and whitespace collapsed
    """
    if value is None:
        return ""

    if isinstance(value, Tag):
        text = value.get_text(" ")
    else:
        if not value:
            return ""
        text = BeautifulSoup(value, "html.parser").get_text(" ")

    text = text.translate(TYPOGRAPHIC_TABLE)
    return WHITESPACE.sub(" ", text).strip()


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters."""
    return text[:limit]
