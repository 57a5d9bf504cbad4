"""Proxy fallback targets built from settings."""

import logging
from typing import List, Optional
from urllib.parse import quote

from hotspot.shared.config import Settings

logger = logging.getLogger(__name__)

SCRAPERAPI_ENDPOINT = "https://api.scraperapi.com"
BRIGHTDATA_ENDPOINT = "https://brd.superproxy.io:22225"
JINA_ENDPOINT = "https://r.jina.ai/"


def build_proxy_url(url: str, settings: Settings) -> Optional[str]:
    """Proxy URL that fetches ``url`` on our behalf, or None when not configured."""
    proxy_type = settings.PROXY_TYPE
    encoded = quote(url, safe="")

    if proxy_type == "scraperapi":
        if not settings.PROXY_API_KEY:
            logger.warning("ScraperAPI proxy requires PROXY_API_KEY")
            return None
        return f"{SCRAPERAPI_ENDPOINT}?api_key={settings.PROXY_API_KEY}&url={encoded}"

    if proxy_type == "brightdata":
        if not settings.PROXY_API_KEY:
            logger.warning("Bright Data proxy requires PROXY_API_KEY")
            return None
        return f"{BRIGHTDATA_ENDPOINT}?api_key={settings.PROXY_API_KEY}&url={encoded}"

    if proxy_type == "custom":
        template = settings.PROXY_CUSTOM_URL
        if not template:
            logger.warning("Custom proxy requires PROXY_CUSTOM_URL")
            return None
        return template.replace("{url}", url).replace("{encodedUrl}", encoded)

    if proxy_type == "jina":
        return f"{JINA_ENDPOINT}{encoded}"

    return None


def get_proxy_targets(url: str, settings: Settings) -> List[str]:
    proxy_url = build_proxy_url(url, settings)
    return [proxy_url] if proxy_url else []
