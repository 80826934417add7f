"""
Exact-key deduplication for scraped shows.

The same show can appear on several listing pages, or once from the
listing and again from link-following. Records sharing (title, venue,
date) are collapsed to the first one seen; later copies are dropped even
if their other fields differ.
"""

from .models import DedupeResult, Show


def deduplicate(shows: list[Show]) -> DedupeResult:
    """
    Keep the first show per dedup key, preserving input order.

    Args:
        shows: Shows in crawl order

    Returns:
        DedupeResult with the kept shows and the keys of dropped records
    """
    seen: set[str] = set()
    kept: list[Show] = []
    dropped: list[str] = []

    for show in shows:
        key = show.dedup_key
        if key in seen:
            dropped.append(key)
            continue
        seen.add(key)
        kept.append(show)

    return DedupeResult(
        shows=kept,
        original_count=len(shows),
        duplicates_removed=len(dropped),
        dropped_keys=dropped,
    )
