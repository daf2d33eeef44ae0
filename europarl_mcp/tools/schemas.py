"""Pydantic input models for the EP tools.

Field names are snake_case; the camelCase names MCP clients send
(``dateFrom``, ``sessionId`` …) are accepted as aliases.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

DateString = Annotated[str, Field(pattern=DATE_PATTERN, description="Date in YYYY-MM-DD format")]
Limit = Annotated[int, Field(ge=1, le=100, description="Maximum results to return")]
Offset = Annotated[int, Field(ge=0, description="Pagination offset")]


class ToolParams(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ── MEPs ─────────────────────────────────────────────────
class GetMEPsParams(ToolParams):
    country: Optional[str] = Field(
        default=None,
        pattern=r"^[A-Z]{2}$",
        description='ISO 3166-1 alpha-2 country code (e.g., "SE")',
    )
    group: Optional[str] = Field(
        default=None, min_length=1, max_length=50, description="Political group identifier"
    )
    committee: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="Committee identifier"
    )
    active: bool = Field(default=True, description="Filter by active status")
    limit: Limit = 50
    offset: Offset = 0


class GetMEPDetailsParams(ToolParams):
    id: str = Field(min_length=1, max_length=100, description="MEP identifier")


class GetCurrentMEPsParams(ToolParams):
    limit: Limit = 50
    offset: Offset = 0


# ── Plenary & votes ──────────────────────────────────────
class GetPlenarySessionsParams(ToolParams):
    date_from: Optional[DateString] = None
    date_to: Optional[DateString] = None
    location: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="Session location"
    )
    limit: Limit = 50
    offset: Offset = 0


class GetVotingRecordsParams(ToolParams):
    session_id: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="Plenary session identifier"
    )
    topic: Optional[str] = Field(
        default=None, min_length=1, max_length=200, description="Vote topic or keyword"
    )
    date_from: Optional[DateString] = None
    date_to: Optional[DateString] = None
    limit: Limit = 50
    offset: Offset = 0


# ── Documents & committees ───────────────────────────────
class SearchDocumentsParams(ToolParams):
    keyword: str = Field(
        min_length=1,
        max_length=200,
        pattern=r"^[a-zA-Z0-9\s\-_]+$",
        description="Search keyword or phrase",
    )
    document_type: Optional[
        Literal["REPORT", "RESOLUTION", "DECISION", "DIRECTIVE", "REGULATION", "OPINION", "AMENDMENT"]
    ] = Field(default=None, description="Filter by document type")
    date_from: Optional[DateString] = None
    date_to: Optional[DateString] = None
    committee: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="Committee identifier"
    )
    limit: Limit = 20
    offset: Offset = 0


class GetCommitteeInfoParams(ToolParams):
    id: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="Committee identifier"
    )
    abbreviation: Optional[str] = Field(
        default=None, min_length=1, max_length=20, description="Committee abbreviation"
    )


class GetParliamentaryQuestionsParams(ToolParams):
    type: Optional[Literal["WRITTEN", "ORAL"]] = Field(default=None, description="Question type")
    author: Optional[str] = Field(
        default=None, min_length=1, max_length=100, description="MEP identifier or name"
    )
    topic: Optional[str] = Field(
        default=None, min_length=1, max_length=200, description="Question topic or keyword"
    )
    status: Optional[Literal["PENDING", "ANSWERED"]] = Field(
        default=None, description="Question status"
    )
    date_from: Optional[DateString] = None
    date_to: Optional[DateString] = None
    limit: Limit = 50
    offset: Offset = 0


# ── Procedures & events ──────────────────────────────────
class GetProceduresParams(ToolParams):
    year: Optional[int] = Field(default=None, ge=1990, le=2040, description="Filter by year")
    limit: Limit = 50
    offset: Offset = 0


class GetEventsParams(ToolParams):
    date_from: Optional[DateString] = None
    date_to: Optional[DateString] = None
    limit: Limit = 50
    offset: Offset = 0


# ── Feeds ────────────────────────────────────────────────
class FeedTimeframe(StrEnum):
    TODAY = "today"
    ONE_DAY = "one-day"
    ONE_WEEK = "one-week"
    ONE_MONTH = "one-month"
    CUSTOM = "custom"


class FeedParams(ToolParams):
    timeframe: FeedTimeframe = Field(
        default=FeedTimeframe.ONE_WEEK, description="Timeframe for the feed (default: one-week)"
    )
    start_date: Optional[DateString] = Field(
        default=None, description='Start date (YYYY-MM-DD), required when timeframe is "custom"'
    )

    @model_validator(mode="after")
    def require_start_date_for_custom(self) -> FeedParams:
        if self.timeframe == FeedTimeframe.CUSTOM and not self.start_date:
            raise ValueError('startDate is required when timeframe is "custom"')
        return self


class GetMEPsFeedParams(FeedParams):
    pass


class GetProceduresFeedParams(FeedParams):
    process_type: Optional[str] = Field(
        default=None, max_length=200, description="Procedure type filter"
    )
