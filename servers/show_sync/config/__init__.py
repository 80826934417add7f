"""Runtime settings and per-site configuration."""

from .settings import RunSettings, StoreSettings
from .sites import NELSON, KELOWNA, SITES, SiteConfig, get_site

__all__ = [
    "RunSettings",
    "StoreSettings",
    "SiteConfig",
    "SITES",
    "KELOWNA",
    "NELSON",
    "get_site",
]
