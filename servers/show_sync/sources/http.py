"""
Page fetcher for the event-calendar sites.

One GET per URL, no retries: a failed page is lost for the run and the
caller decides what that means (stop paginating, keep the old genre, skip
the link).
"""

from typing import Iterable, Optional

import httpx
import structlog
from structlog.typing import FilteringBoundLogger

from ..errors import TransportError
from .url_validator import validate_source_url

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 30.0
MAX_REDIRECTS = 10


class PageFetcher:
    """Fetch raw HTML documents over HTTP(S).

    Use as an async context manager, or pass an existing httpx.AsyncClient
    (the caller then owns its lifecycle).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        """Initialize the fetcher.

        Args:
            client: Optional shared client; one is created on enter otherwise
            allowed_hosts: Hosts this fetcher may contact (None = any public host)
            timeout: Transport timeout in seconds for a created client
            logger: Structured logger to report fetches to
        """
        self._client = client
        self._owns_client = client is None
        self.allowed_hosts = set(allowed_hosts) if allowed_hosts is not None else None
        self.timeout = timeout
        self.log = logger or structlog.get_logger(__name__)

    async def __aenter__(self) -> "PageFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> str:
        """Fetch a page and return its body text.

        Redirects are followed one hop at a time, and every target must pass
        the same fetch policy as the original URL.

        Raises:
            UnsafeURLError: If the URL or a redirect target is refused by the fetch policy
            TransportError: On transport failure, too many redirects or non-2xx status
        """
        if self._client is None:
            raise RuntimeError("PageFetcher must be entered before fetching")

        url = validate_source_url(url, allowed_hosts=self.allowed_hosts)

        try:
            response = await self._client.get(
                url, headers={"User-Agent": USER_AGENT}, follow_redirects=False
            )
            for _ in range(MAX_REDIRECTS):
                if not response.is_redirect or response.next_request is None:
                    break
                target = validate_source_url(
                    str(response.next_request.url), allowed_hosts=self.allowed_hosts
                )
                self.log.debug("page_redirected", url=url, target=target)
                response = await self._client.send(response.next_request, follow_redirects=False)
            else:
                if response.is_redirect:
                    raise TransportError(url, f"Exceeded {MAX_REDIRECTS} redirects")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            self.log.warning("page_fetch_failed", url=url, status_code=status)
            raise TransportError(url, f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            self.log.warning("page_fetch_failed", url=url, error=str(e))
            raise TransportError(url, f"Request failed: {e}") from e

        self.log.debug("page_fetched", url=url, bytes=len(response.content))
        return response.text
