"""Pydantic schemas for keyword matching and weighting."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from hotspot.schemas.source import CamelModel


class KeywordGroup(CamelModel):
    """Rule-set of normal, required (``+word``) and excluded (``!word``) words.

    Lower ``priority`` numbers take precedence.
    """

    id: str
    name: Optional[str] = None
    words: List[str] = Field(default_factory=list)
    required_words: List[str] = Field(default_factory=list)
    excluded_words: List[str] = Field(default_factory=list)
    priority: int = 0
    enabled: bool = True


class MatchResult(CamelModel):
    matched: bool
    keyword_group: Optional[KeywordGroup] = None
    matched_words: List[str] = Field(default_factory=list)


class Appearance(CamelModel):
    rank: int = Field(..., ge=1)
    appeared_at: Optional[datetime] = None


class NewsMatchData(CamelModel):
    """Appearance history of a matched item, read back from storage."""

    ranks: List[int] = Field(default_factory=list)
    match_count: int = Field(0, ge=0)
    appearances: List[Appearance] = Field(default_factory=list)
