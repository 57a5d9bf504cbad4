"""Pydantic schemas describing one scrapeable source.

A ``SourceConfig`` is supplied by the configuration layer as JSON using
camelCase keys (``baseUrl``, ``itemSelector``, ``publishedAt`` ...). Models are
frozen: the extraction pipeline never mutates the caller's configuration, it
works on copies produced with ``model_copy``.

Example:
    ```python
    from hotspot.schemas.source import SourceConfig

    config = SourceConfig.model_validate({
        "type": "html",
        "baseUrl": "https://news.example.com",
        "list": {
            "url": "https://news.example.com/latest",
            "itemSelector": ".news-list li",
            "limit": 20,
            "fields": {"title": {"selector": "a"}, "url": {"selector": "a", "attribute": "href"}},
        },
    })
    ```
"""

import re
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both camelCase keys and snake_case names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


def _check_patterns(patterns: Optional[List[str]]) -> Optional[List[str]]:
    if patterns is None:
        return None
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid regular expression {pattern!r}: {e}")
    return patterns


class FieldRule(CamelModel):
    """How to read one field from an item element."""

    selector: Optional[str] = Field(
        None,
        description="CSS selector relative to the item element; the element itself when omitted"
    )

    attribute: Optional[str] = Field(
        None,
        description="Attribute to read instead of the text content"
    )

    regex: Optional[str] = Field(
        None,
        description="Regular expression applied to the raw value; group 1 or the whole match is kept"
    )

    @field_validator("regex")
    @classmethod
    def validate_regex(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            _check_patterns([v])
        return v


class FieldMap(CamelModel):
    """Field rules for one listing; only ``title`` is required."""

    title: FieldRule = Field(default_factory=FieldRule)
    url: Optional[FieldRule] = None
    published_at: Optional[FieldRule] = None
    summary: Optional[FieldRule] = None


class FilterPolicy(CamelModel):
    """Synchronous filter settings. ``None`` lists fall back to built-in defaults."""

    min_title_length: int = Field(3, ge=0)
    max_title_length: int = Field(200, ge=1)
    require_url: bool = True
    exclude_nav_patterns: Optional[List[str]] = Field(
        None,
        description="Navigation title patterns, matched case-insensitively"
    )
    exclude_url_patterns: Optional[List[str]] = None
    exclude_parent_selectors: Optional[List[str]] = None
    nav_title_max_length: Optional[int] = Field(
        None,
        ge=0,
        description="Titles up to this length are checked against navigation patterns"
    )

    @field_validator("exclude_nav_patterns", "exclude_url_patterns")
    @classmethod
    def validate_patterns(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_patterns(v)


class ListConfig(CamelModel):
    """Request and extraction description for a listing or search page."""

    url: str = Field(..., min_length=1)
    method: Literal["GET", "POST"] = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    item_selector: str = Field(..., min_length=1)
    limit: Optional[int] = Field(None, ge=1)
    fields: FieldMap = Field(default_factory=FieldMap)
    keyword_param: Optional[str] = None
    filters: FilterPolicy = Field(default_factory=FilterPolicy)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must be an absolute http(s) URL")
        return v


class SourceConfig(CamelModel):
    """Immutable description of a configurable HTML source."""

    type: Literal["html"] = "html"
    base_url: Optional[str] = None
    list_config: ListConfig = Field(..., alias="list")
    search: Optional[ListConfig] = None
