"""
Live Music Show Sync

Scrapes the public event calendars of regional live-music sites and keeps
the "shows" collection of a remote record store in sync:
- Crawling paginated listing pages
- Extracting show records with ordered fallback rules
- Enriching generic genres from event detail pages
- Deduplicating and upserting records by identity

Sites: livemusickelowna.ca (Kelowna), livemusicnelson.ca (Nelson)
"""

__version__ = "1.0.0"
