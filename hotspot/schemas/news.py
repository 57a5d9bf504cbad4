"""Pydantic schemas for crawl output."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from hotspot.schemas.source import CamelModel
from hotspot.shared.exceptions import ErrorKind


class NewsItem(CamelModel):
    """One accepted item; ``rank`` is its 1-based position among accepted items."""

    title: str = Field(..., min_length=1)
    url: Optional[str] = None
    mobile_url: Optional[str] = None
    rank: int = Field(..., ge=1)
    content: Optional[str] = None
    published_at: Optional[datetime] = None


class CrawlOptions(CamelModel):
    """Options for a single crawl call."""

    keywords: List[str] = Field(default_factory=list)
    mode: Literal["hot", "search"] = "hot"
    limit: Optional[int] = Field(None, ge=1)


class CrawlResult(CamelModel):
    """Batch result returned for one platform; never raised, always returned."""

    success: bool
    platform_id: str
    data: List[NewsItem] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def from_items(cls, platform_id: str, items: List[NewsItem], empty_error: str) -> "CrawlResult":
        return cls(
            success=len(items) > 0,
            platform_id=platform_id,
            data=items,
            error=None if items else empty_error,
        )

    @classmethod
    def failure(cls, platform_id: str, error: str, kind: Optional[ErrorKind] = None) -> "CrawlResult":
        return cls(success=False, platform_id=platform_id, error=error, error_kind=kind)
