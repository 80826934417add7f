"""
URL policy for outbound page fetches.

Detail-page URLs are scraped from third-party markup, so before any request
is made a URL must:
- Use http(s) (https only when required)
- Carry a hostname on the site's allow list (subdomains included)
- Not be a literal private, loopback, link-local or reserved IP address
"""

import ipaddress
from typing import Iterable, Optional
from urllib.parse import urlparse

from ..errors import UnsafeURLError

BLOCKED_HOSTNAMES = {
    "localhost",
    "localhost.localdomain",
}


def validate_source_url(
    url: str,
    allowed_hosts: Optional[Iterable[str]] = None,
    require_https: bool = False,
) -> str:
    """
    Validate a URL before fetching it.

    Args:
        url: The URL to validate
        allowed_hosts: Optional allow list of hostnames. If provided, only
                       these hosts and their subdomains are accepted.
        require_https: If True, reject http:// URLs

    Returns:
        The validated URL (stripped)

    Raises:
        UnsafeURLError: If the URL fails validation
    """
    if not url or not isinstance(url, str):
        raise UnsafeURLError(str(url), "URL must be a non-empty string")

    url = url.strip()
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    allowed_schemes = ("https",) if require_https else ("http", "https")
    if scheme not in allowed_schemes:
        raise UnsafeURLError(url, f"Scheme '{scheme or 'none'}' is not allowed")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise UnsafeURLError(url, "URL must include a hostname")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        raise UnsafeURLError(url, f"Access to {hostname} is blocked")

    if _is_internal_ip(hostname):
        raise UnsafeURLError(url, f"Access to internal address {hostname} is blocked")

    if allowed_hosts is not None and not host_matches(hostname, allowed_hosts):
        raise UnsafeURLError(url, f"Host {hostname} is not an allowed source host")

    return url


def host_matches(hostname: str, allowed_hosts: Iterable[str]) -> bool:
    """Check if hostname equals or is a subdomain of an allowed host."""
    hostname = hostname.lower()
    for allowed in allowed_hosts:
        allowed = allowed.lower().removeprefix("www.")
        if hostname == allowed or hostname.endswith("." + allowed):
            return True
    return False


def _is_internal_ip(hostname: str) -> bool:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )
