"""Domain objects produced from EP API JSON-LD responses."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class DocumentType(str, Enum):
    REPORT = "REPORT"
    RESOLUTION = "RESOLUTION"
    DECISION = "DECISION"
    DIRECTIVE = "DIRECTIVE"
    REGULATION = "REGULATION"
    OPINION = "OPINION"
    AMENDMENT = "AMENDMENT"


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_COMMITTEE = "IN_COMMITTEE"
    PLENARY = "PLENARY"
    ADOPTED = "ADOPTED"
    REJECTED = "REJECTED"


@dataclass
class MEP:
    """A Member of the European Parliament."""

    id: str
    name: str
    country: str = "Unknown"
    political_group: str = "Unknown"
    committees: list[str] = field(default_factory=list)
    active: bool = False
    term_start: str = ""
    email: Optional[str] = None
    term_end: Optional[str] = None


@dataclass
class VotingStatistics:
    total_votes: int = 0
    votes_for: int = 0
    votes_against: int = 0
    abstentions: int = 0
    attendance_rate: float = 0.0


@dataclass
class MEPDetails(MEP):
    biography: Optional[str] = None
    # /meps/{id} carries no voting data; zeros mean "not available"
    voting_statistics: VotingStatistics = field(default_factory=VotingStatistics)


@dataclass
class PlenarySession:
    id: str
    date: str
    location: str
    agenda_items: list[str] = field(default_factory=list)
    attendance_count: int = 0
    documents: list[str] = field(default_factory=list)


@dataclass
class VotingRecord:
    id: str
    session_id: str
    topic: str
    date: str
    votes_for: int = 0
    votes_against: int = 0
    abstentions: int = 0
    result: str = "REJECTED"  # ADOPTED | REJECTED


@dataclass
class Committee:
    id: str
    name: str
    abbreviation: str
    members: list[str] = field(default_factory=list)
    chair: str = ""
    vice_chairs: list[str] = field(default_factory=list)
    responsibilities: list[str] = field(default_factory=list)


@dataclass
class LegislativeDocument:
    id: str
    type: str
    title: str
    date: str
    status: str
    authors: list[str] = field(default_factory=list)
    summary: str = ""
    committee: Optional[str] = None


@dataclass
class ParliamentaryQuestion:
    id: str
    type: str  # WRITTEN | ORAL
    author: str
    date: str
    topic: str
    question_text: str
    status: str  # PENDING | ANSWERED
    answer_text: Optional[str] = None
    answer_date: Optional[str] = None


@dataclass
class Procedure:
    id: str
    title: str
    reference: str = ""
    type: str = ""
    subject_matter: str = ""
    stage: str = ""
    status: str = ""
    date_initiated: str = ""
    date_last_activity: str = ""
    responsible_committee: str = ""
    rapporteur: str = ""
    documents: list[str] = field(default_factory=list)


@dataclass
class EPEvent:
    id: str
    title: str
    date: str = ""
    end_date: str = ""
    type: str = ""
    location: str = ""
    organizer: str = ""
    status: str = ""


@dataclass
class PaginatedResponse(Generic[T]):
    data: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool


# ── Serialisation ────────────────────────────────────────


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_payload(value: Any) -> Any:
    """Convert dataclasses to JSON-ready dicts with camelCase keys.

    Optional fields left as ``None`` are omitted.
    """
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            out[_camel(f.name)] = to_payload(item)
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    return value
