"""Shared fixtures for all test modules."""

from __future__ import annotations

from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio


# ── Clock ────────────────────────────────────────────────


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_limiter(clock) -> Callable[..., Any]:
    """Factory for limiters bound to the fake clock."""
    from europarl_mcp.api.rate_limiter import TokenBucketRateLimiter

    def _make(capacity=10, interval="second", initial_tokens=None):
        return TokenBucketRateLimiter(
            capacity=capacity,
            interval=interval,
            initial_tokens=initial_tokens,
            clock=clock,
        )

    return _make


# ── Config fixtures ──────────────────────────────────────


@pytest.fixture
def raw_config_dict() -> Dict[str, Any]:
    """Minimal valid config dict for constructing AppConfig."""
    return {
        "api": {
            "base_url": "https://data.europarl.europa.eu/api/v2",
            "timeout": 5,
            "enable_retry": True,
            "max_retries": 2,
            "retry_delay": 0.5,
            "rate_limit": {"capacity": 100, "interval": "minute"},
        },
        "cache": {"enabled": True, "ttl": 900, "max_size": 50},
        "logging": {
            "level": "DEBUG",
            "console": False,
            "file": None,
            "audit_file": None,
        },
    }


@pytest.fixture
def sample_config(raw_config_dict):
    """Build a validated AppConfig."""
    from europarl_mcp.config.models import AppConfig

    return AppConfig(**raw_config_dict)


@pytest.fixture(autouse=True)
def _clear_ep_env(monkeypatch):
    """Keep the developer's shell from leaking overrides into tests."""
    for name in (
        "EP_API_URL",
        "EP_REQUEST_TIMEOUT_MS",
        "EP_CACHE_TTL",
        "EP_RATE_LIMIT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# ── Client fixtures ──────────────────────────────────────


@pytest.fixture
def make_client(sample_config, make_limiter):
    """Factory for an EP client whose HTTP layer is an AsyncMock.

    ``responses`` is fed to ``_fetch_json`` as its ``side_effect``: a list
    of payloads (or exceptions) returned in order, or a callable.
    """
    from europarl_mcp.api.client import EuropeanParliamentClient

    def _make(responses=None, capacity=100, interval="minute", cache=True):
        cache_config = sample_config.cache.model_copy(update={"enabled": cache})
        api_config = sample_config.api.model_copy(update={"retry_delay": 0})
        client = EuropeanParliamentClient(
            api_config,
            cache_config,
            rate_limiter=make_limiter(capacity=capacity, interval=interval),
        )
        client._fetch_json = AsyncMock(side_effect=responses if responses is not None else [])
        return client

    return _make


@pytest_asyncio.fixture
async def registry(make_client):
    """ToolRegistry over a client with no canned responses."""
    from europarl_mcp.tools.registry import ToolRegistry

    return ToolRegistry(make_client())


# ── JSON-LD samples ──────────────────────────────────────


@pytest.fixture
def mep_record() -> Dict[str, Any]:
    """A /meps list item as the EP API returns it."""
    return {
        "id": "person/124936",
        "type": "Person",
        "identifier": "124936",
        "label": "Jane DOE",
        "familyName": "Doe",
        "givenName": "Jane",
        "sortLabel": "DOE",
    }


@pytest.fixture
def meeting_record() -> Dict[str, Any]:
    return {
        "id": "eli/dl/event/MTG-PL-2024-01-15",
        "activity_id": "MTG-PL-2024-01-15",
        "eli-dl:activity_date": {"@value": "2024-01-15T17:00:00+01:00"},
        "hasLocality": "http://publications.europa.eu/resource/authority/place/FRA_SXB",
    }


@pytest.fixture
def vote_records() -> List[Dict[str, Any]]:
    return [
        {
            "activity_id": "MTG-PL-2024-01-15-VOT-1",
            "label": "Climate adaptation report",
            "eli-dl:activity_date": "2024-01-15T12:00:00",
            "number_of_votes_favor": 420,
            "number_of_votes_against": "150",
            "number_of_votes_abstention": 30,
            "decision_method": "def/ep-decision-methods/ADOPTED",
        },
        {
            "activity_id": "MTG-PL-2024-01-15-VOT-2",
            "label": "Fisheries agreement",
            "eli-dl:activity_date": "2024-01-15T12:30:00",
            "had_voter_favor": ["person/1", "person/2"],
            "had_voter_against": ["person/3", "person/4", "person/5"],
            "had_voter_abstention": [],
        },
    ]


@pytest.fixture
def document_record() -> Dict[str, Any]:
    return {
        "work_id": "A9-0123/2024",
        "work_type": "def/ep-document-types/REPORT_PLENARY",
        "title_dcterms": [
            {"@language": "fr", "@value": "Rapport sur le climat"},
            {"@language": "en", "@value": "Report on climate adaptation"},
        ],
        "work_date_document": "2024-02-01",
        "resource_legal_in-force": "ADOPTED",
        "was_attributed_to": "ENVI",
    }


@pytest.fixture
def committee_record() -> Dict[str, Any]:
    return {
        "body_id": "ENVI",
        "label": {"en": "Committee on the Environment"},
        "notation": "ENVI",
        "hasMembership": [
            {"person": "person/1"},
            {"person": "person/2"},
            "person/3",
            {"person": "person/4"},
        ],
        "classification": "def/ep-entities/COMMITTEE_PARLIAMENTARY_STANDING",
    }
