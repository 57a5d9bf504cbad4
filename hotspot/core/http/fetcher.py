"""HTTP fetching with browser headers, linear retries and proxy fallback.

All outbound traffic of the crawler goes through ``HtmlFetcher``. Failures are
raised as typed exceptions carrying their ``ErrorKind``:

- ``FetchTimeoutError``: the request exceeded its timeout
- ``FetchConnectionError``: the host could not be reached
- ``HttpStatusError``: the host answered non-2xx
- ``ResponseParseError``: a JSON body could not be decoded
- ``RobotsDisallowedError``: robots.txt forbids the URL
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from hotspot.core.http.proxy import get_proxy_targets
from hotspot.core.http.robots import RobotsChecker
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import (
    FetchConnectionError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    ResponseParseError,
    RobotsDisallowedError,
)


BLOCKED_STATUS_CODES = frozenset({
    401, 402, 403, 404, 409, 410, 412, 418, 429, 430, 431, 432, 444, 451
})

_CHARSET_RE = re.compile(rb"""charset\s*=\s*["']?([A-Za-z0-9_-]+)""", re.IGNORECASE)
_GB_CHARSETS = ("gbk", "gb2312", "gb18030")

ROBOTS_TIMEOUT = 5.0


def browser_headers(settings: Settings, json_variant: bool = False) -> Dict[str, str]:
    headers = {
        "User-Agent": settings.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": settings.ACCEPT_LANGUAGE,
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
    }
    if json_variant:
        headers.update({
            "Accept": "application/json, text/plain, */*",
            "Content-Type": "application/json",
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
        })
    return headers


def origin_of(url: str) -> Optional[str]:
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def decode_html(response: httpx.Response) -> str:
    """Decode a page, honouring a GB-family charset declared in the markup."""
    match = _CHARSET_RE.search(response.content[:4096])
    if match and match.group(1).decode("ascii").lower() in _GB_CHARSETS:
        # gb18030 is a superset of gbk and gb2312
        return response.content.decode("gb18030", errors="replace")
    return response.text


class HtmlFetcher:
    """Shared async HTTP client for listing pages, article pages and JSON APIs."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.logger = logger or logging.getLogger(__name__)
        self.robots = RobotsChecker(
            self._load_robots,
            max_crawl_delay=settings.ROBOTS_MAX_CRAWL_DELAY,
            logger=self.logger
        )

    async def __aenter__(self) -> "HtmlFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        content: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        referer: Optional[str] = None,
        origin: Optional[str] = None,
        json_headers: bool = False,
        proxy_fallback: bool = False,
    ) -> httpx.Response:
        """Issue a request, retrying each target linearly; returns the first 2xx response."""
        timeout = timeout if timeout is not None else self.settings.FETCH_TIMEOUT
        retries = retries if retries is not None else self.settings.FETCH_MAX_RETRIES
        retry_delay = retry_delay if retry_delay is not None else self.settings.FETCH_RETRY_DELAY

        own_origin = origin_of(url)
        final_headers = browser_headers(self.settings, json_variant=json_headers)
        referer = referer or own_origin
        origin = origin or own_origin
        if referer:
            final_headers["Referer"] = referer
        if origin:
            final_headers["Origin"] = origin
        final_headers.update(headers or {})

        targets: List[str] = [url]
        if proxy_fallback:
            targets.extend(get_proxy_targets(url, self.settings))

        last_error: Optional[FetchError] = None

        for target in targets:
            is_proxy = target != url
            request_headers = dict(final_headers)
            if is_proxy:
                request_headers["Accept"] = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

            for attempt in range(retries + 1):
                try:
                    response = await self._client.request(
                        method,
                        target,
                        headers=request_headers,
                        # the proxy URL already carries the full original URL
                        params=None if is_proxy else params,
                        content=content,
                        timeout=timeout,
                    )
                except httpx.TimeoutException:
                    last_error = FetchTimeoutError(url, timeout)
                except httpx.TransportError as e:
                    last_error = FetchConnectionError(url, str(e) or e.__class__.__name__)
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    # not retried
                    self.logger.warning("Request aborted", extra={"url": url, "error": str(e)})
                    raise FetchConnectionError(url, str(e) or e.__class__.__name__) from e
                else:
                    if response.is_success:
                        if is_proxy:
                            self.logger.info("Fetched through proxy", extra={"url": url})
                        return response

                    status = response.status_code
                    last_error = HttpStatusError(url, status)

                    if is_proxy:
                        self.logger.warning(
                            "Proxy answered with error status",
                            extra={"url": url, "status_code": status}
                        )
                        raise last_error

                    if proxy_fallback and status in BLOCKED_STATUS_CODES:
                        self.logger.warning(
                            "Blocked status, switching to proxy",
                            extra={"url": url, "status_code": status}
                        )
                        break

                self.logger.warning(
                    "Request failed",
                    extra={
                        "url": target if not is_proxy else url,
                        "attempt": attempt + 1,
                        "max_attempts": retries + 1,
                        "error": last_error.message,
                    }
                )
                if attempt < retries:
                    await asyncio.sleep(retry_delay * (attempt + 1))

        if last_error is None:
            last_error = FetchConnectionError(url, "no fetch target available")
        raise last_error

    async def fetch_html(self, url: str, *, check_robots: Optional[bool] = None, **kwargs: Any) -> str:
        if check_robots is None:
            check_robots = self.settings.ROBOTS_CHECK_ENABLED
        if check_robots:
            user_agent = (kwargs.get("headers") or {}).get("User-Agent", self.settings.USER_AGENT)
            decision = await self.robots.check(url, user_agent)
            if not decision.allowed:
                raise RobotsDisallowedError(url)
            if decision.crawl_delay:
                self.logger.debug(
                    "Applying robots.txt crawl delay",
                    extra={"url": url, "crawl_delay": decision.crawl_delay}
                )
                await asyncio.sleep(decision.crawl_delay)

        response = await self.fetch(url, json_headers=False, **kwargs)
        return decode_html(response)

    async def fetch_json(self, url: str, **kwargs: Any) -> Any:
        response = await self.fetch(url, json_headers=True, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            self.logger.error(
                "Response is not valid JSON",
                extra={"url": url, "error": str(e), "body_preview": response.text[:500]}
            )
            raise ResponseParseError(url, str(e))

    async def _load_robots(self, robots_url: str) -> Optional[str]:
        try:
            response = await self._client.get(
                robots_url,
                headers={"User-Agent": self.settings.USER_AGENT},
                timeout=ROBOTS_TIMEOUT,
            )
        except httpx.HTTPError as e:
            self.logger.debug("robots.txt unreachable", extra={"url": robots_url, "error": str(e)})
            return None
        if response.status_code != 200:
            return None
        return response.text
