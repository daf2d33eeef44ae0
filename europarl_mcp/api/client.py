"""Async European Parliament Open Data API client built on aiohttp."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import aiohttp
from loguru import logger

from europarl_mcp.config.models import APIConfig, CacheConfig
from europarl_mcp.data.models import (
    MEP,
    Committee,
    EPEvent,
    LegislativeDocument,
    MEPDetails,
    PaginatedResponse,
    ParliamentaryQuestion,
    PlenarySession,
    Procedure,
    VotingRecord,
)
from europarl_mcp.utils.audit import AuditLogger
from europarl_mcp.utils.errors import EPAPIError, RateLimitExceeded
from europarl_mcp.utils.metrics import MetricName, MetricsService

from . import transformers as tf
from .cache import ResponseCache
from .jsonld import Record, to_safe_string
from .rate_limiter import TokenBucketRateLimiter

T = TypeVar("T")

# Short document types accepted by search_documents -> EP work-type codes
DOCUMENT_TYPE_CODES = {
    "REPORT": "REPORT_PLENARY",
    "AMENDMENT": "AMENDMENT_LIST",
    "RESOLUTION": "RESOLUTION_MOTION",
    "ADOPTED": "TEXT_ADOPTED",
}

# Meetings scanned for vote results when no session id is given
RECENT_MEETINGS_SCANNED = 5

# Upstream 429 without a usable Retry-After header
DEFAULT_RETRY_AFTER = 60.0


def build_query_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop ``None`` values and stringify the rest for the query string."""
    query: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


def _parse_retry_after(header: Optional[str]) -> float:
    if header is None:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0.0, float(header))
    except ValueError:
        return DEFAULT_RETRY_AFTER


def _items(response: Any) -> List[Record]:
    data = response.get("data") if isinstance(response, dict) else None
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _page(items: List[T], limit: int, offset: int) -> PaginatedResponse[T]:
    """Page metadata for a server-paginated listing."""
    return PaginatedResponse(
        data=items,
        total=offset + len(items),
        limit=limit,
        offset=offset,
        has_more=len(items) >= limit,
    )


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class EuropeanParliamentClient:
    """Rate-limited, cached EP Open Data API client.

    Usage::

        async with EuropeanParliamentClient(api_config, cache_config) as client:
            meps = await client.get_meps(country="SE")

    Every outbound request consumes one token from *rate_limiter*. When
    the bucket is empty the request is not sent: ``RateLimitExceeded``
    propagates to the caller with a retry-after hint.
    """

    def __init__(
        self,
        api_config: APIConfig,
        cache_config: Optional[CacheConfig] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        metrics: Optional[MetricsService] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.config = api_config
        cache_config = cache_config or CacheConfig()
        rl = api_config.rate_limit
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(
            capacity=rl.capacity,
            interval=rl.interval,
            initial_tokens=rl.initial_tokens,
        )
        self.metrics = metrics or MetricsService()
        self.audit = audit or AuditLogger()
        self._cache: Optional[ResponseCache] = (
            ResponseCache(max_size=cache_config.max_size, ttl=cache_config.ttl)
            if cache_config.enabled
            else None
        )
        self._session: Optional[aiohttp.ClientSession] = None

    # ── Context manager ──────────────────────────────────

    async def __aenter__(self) -> "EuropeanParliamentClient":
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            headers={
                "Accept": "application/ld+json",
                "User-Agent": self.config.user_agent,
            },
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    # ── Generic request ──────────────────────────────────

    def _take_token(self) -> None:
        """Consume one token or raise ``RateLimitExceeded``."""
        if self.rate_limiter.try_acquire(1):
            return
        # Raises with the retry-after hint unless tokens accrued meanwhile
        try:
            self.rate_limiter.acquire(1)
        except RateLimitExceeded:
            self.metrics.increment_counter(MetricName.RATE_LIMIT_REJECTIONS)
            raise

    async def _fetch_json(self, url: str, params: Dict[str, str], endpoint: str) -> Any:
        """Single HTTP GET attempt."""
        if self._session is None:
            raise RuntimeError(
                "Client session not started; use 'async with EuropeanParliamentClient(...)'"
            )
        async with self._session.get(url, params=params) as resp:
            if resp.status == 429:
                retry_after = _parse_retry_after(resp.headers.get("Retry-After"))
                logger.warning(f"EP API rate limited {endpoint}, retry after {retry_after}s")
                raise RateLimitExceeded.from_retry_after(retry_after)
            if resp.status >= 400:
                raise EPAPIError(
                    f"EP API request failed: {resp.reason or resp.status}",
                    resp.status,
                    {"endpoint": endpoint},
                )
            return await resp.json(content_type=None)

    async def _request(self, endpoint: str, params: Dict[str, str]) -> Any:
        """GET with rate limiting, retries and latency tracking."""
        url = self.config.base_url + endpoint.lstrip("/")
        max_retries = self.config.max_retries if self.config.enable_retry else 0

        for attempt in range(max_retries + 1):
            self._take_token()
            self.metrics.increment_counter(MetricName.EP_API_CALL_COUNT)
            t0 = time.monotonic()
            try:
                data = await self._fetch_json(url, params, endpoint)
                latency_ms = (time.monotonic() - t0) * 1000
                self.metrics.observe_histogram(MetricName.EP_API_REQUEST_DURATION, latency_ms)
                logger.debug(f"[GET] {endpoint} ({latency_ms:.0f}ms)")
                return data

            except asyncio.TimeoutError:
                self.metrics.increment_counter(MetricName.EP_API_ERROR_COUNT)
                raise EPAPIError(
                    f"EP API request to {endpoint} timed out after {self.config.timeout:g}s",
                    408,
                    {"endpoint": endpoint},
                ) from None

            except RateLimitExceeded:
                self.metrics.increment_counter(MetricName.EP_API_ERROR_COUNT)
                raise

            except EPAPIError as exc:
                self.metrics.increment_counter(MetricName.EP_API_ERROR_COUNT)
                # Don't retry client errors – they're permanent
                if exc.status_code < 500 or attempt == max_retries:
                    raise
                failure: Exception = exc

            except aiohttp.ClientError as exc:
                self.metrics.increment_counter(MetricName.EP_API_ERROR_COUNT)
                if attempt == max_retries:
                    raise EPAPIError(
                        f"EP API request error: {exc}", None, {"endpoint": endpoint}
                    ) from exc
                failure = exc

            wait = self.config.retry_delay * 2**attempt
            logger.warning(
                f"Request to {endpoint} failed ({attempt + 1}/{max_retries + 1}): "
                f"{failure} – retrying in {wait:g}s"
            )
            await asyncio.sleep(wait)

        raise AssertionError("unreachable")  # pragma: no cover

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Cached, rate-limited GET. Cache hits do not consume tokens."""
        query = build_query_params(params)
        key = (endpoint, tuple(sorted(query.items())))

        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                self.metrics.increment_counter(MetricName.EP_CACHE_HIT_COUNT)
                return cached
            self.metrics.increment_counter(MetricName.EP_CACHE_MISS_COUNT)

        data = await self._request(endpoint, query)
        if self._cache is not None:
            self._cache.set(key, data)
        return data

    async def _audited(
        self, action: str, params: Dict[str, Any], call: Callable[[], Awaitable[T]]
    ) -> T:
        """Run *call*, recording an audit entry either way."""
        params = _drop_none(params)
        t0 = time.monotonic()
        try:
            result = await call()
        except Exception as exc:
            self.audit.log_error(
                action, params, str(exc), duration_ms=(time.monotonic() - t0) * 1000
            )
            raise
        if isinstance(result, PaginatedResponse):
            count = len(result.data)
        elif isinstance(result, dict):
            count = len(_items(result))
        else:
            count = 1
        self.audit.log_data_access(
            action, params, count, duration_ms=(time.monotonic() - t0) * 1000
        )
        return result

    # ── Cache helpers ────────────────────────────────────

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        if self._cache is None:
            return {"enabled": False, "size": 0, "max_size": 0, "hit_rate": 0.0}
        return {
            "enabled": True,
            "size": len(self._cache),
            "max_size": self._cache.max_size,
            "hit_rate": round(self._cache.hit_rate, 3),
        }

    # ── MEPs ─────────────────────────────────────────────

    async def get_meps(
        self,
        country: Optional[str] = None,
        group: Optional[str] = None,
        committee: Optional[str] = None,
        active: Optional[bool] = True,
        limit: int = 50,
        offset: int = 0,
    ) -> PaginatedResponse[MEP]:
        """GET /meps – Members of Parliament with optional filters."""
        api_params: Dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "country-code": country,
            "political-group": group,
            "committee": committee,
        }
        if active is not None:
            api_params["status"] = "current" if active else "all"

        async def call() -> PaginatedResponse[MEP]:
            response = await self._get("meps", api_params)
            return _page([tf.transform_mep(i) for i in _items(response)], limit, offset)

        params = {"country": country, "group": group, "committee": committee,
                  "active": active, "limit": limit, "offset": offset}
        return await self._audited("get_meps", params, call)

    async def get_mep_details(self, mep_id: str) -> MEPDetails:
        """GET /meps/{id} – accepts ``MEP-123``, ``person/123`` or ``123``."""
        normalized = mep_id
        for prefix in ("MEP-", "person/"):
            if normalized.startswith(prefix):
                normalized = normalized[len(prefix):]
                break

        async def call() -> MEPDetails:
            if not normalized.strip():
                raise EPAPIError("MEP id is required", 400)
            response = await self._get(f"meps/{normalized}")
            items = _items(response)
            if not items:
                raise EPAPIError(f"MEP with ID {mep_id} not found", 404)
            return tf.transform_mep_details(items[0])

        return await self._audited("get_mep_details", {"id": mep_id}, call)

    async def get_current_meps(self, limit: int = 50, offset: int = 0) -> PaginatedResponse[MEP]:
        """GET /meps/show-current – MEPs in office today."""

        async def call() -> PaginatedResponse[MEP]:
            response = await self._get(
                "meps/show-current",
                {"format": "application/ld+json", "limit": limit, "offset": offset},
            )
            return _page([tf.transform_mep(i) for i in _items(response)], limit, offset)

        return await self._audited(
            "get_current_meps", {"limit": limit, "offset": offset}, call
        )

    # ── Plenary ──────────────────────────────────────────

    async def get_plenary_sessions(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        location: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PaginatedResponse[PlenarySession]:
        """GET /meetings – plenary sittings, location filtered client-side."""

        async def call() -> PaginatedResponse[PlenarySession]:
            response = await self._get(
                "meetings",
                {"limit": limit, "offset": offset, "date-from": date_from, "date-to": date_to},
            )
            sessions = [tf.transform_plenary_session(i) for i in _items(response)]
            if location:
                needle = location.lower()
                sessions = [s for s in sessions if needle in s.location.lower()]
            return _page(sessions, limit, offset)

        params = {"date_from": date_from, "date_to": date_to, "location": location,
                  "limit": limit, "offset": offset}
        return await self._audited("get_plenary_sessions", params, call)

    # ── Votes ────────────────────────────────────────────

    async def _vote_results_for_session(self, session_id: str) -> List[VotingRecord]:
        response = await self._get(f"meetings/{session_id}/vote-results")
        return [tf.transform_vote_result(i, session_id) for i in _items(response)]

    async def _vote_results_from_recent_meetings(
        self, date_from: Optional[str], wanted: int
    ) -> List[VotingRecord]:
        meetings_params: Dict[str, Any] = {"limit": RECENT_MEETINGS_SCANNED}
        if date_from:
            meetings_params["year"] = date_from[:4]
        meetings = await self._get("meetings", meetings_params)

        records: List[VotingRecord] = []
        for meeting in _items(meetings):
            meeting_id = to_safe_string(meeting.get("activity_id")) or to_safe_string(
                meeting.get("id")
            )
            if not meeting_id:
                continue
            try:
                records.extend(await self._vote_results_for_session(meeting_id))
            except EPAPIError as exc:
                # Some meetings have no vote results – keep what we have
                self.audit.log_error("get_voting_records", {"meeting_id": meeting_id}, str(exc))
            if len(records) >= wanted:
                break
        return records

    async def get_voting_records(
        self,
        session_id: Optional[str] = None,
        topic: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PaginatedResponse[VotingRecord]:
        """GET /meetings/{id}/vote-results, filtered and paginated client-side."""

        async def call() -> PaginatedResponse[VotingRecord]:
            if session_id:
                records = await self._vote_results_for_session(session_id)
            else:
                records = await self._vote_results_from_recent_meetings(
                    date_from, offset + limit
                )

            if topic:
                needle = topic.lower()
                records = [r for r in records if needle in r.topic.lower()]
            if date_from:
                records = [r for r in records if r.date >= date_from]
            if date_to:
                records = [r for r in records if r.date <= date_to]

            window = records[offset:offset + limit]
            return PaginatedResponse(
                data=window,
                total=len(records),
                limit=limit,
                offset=offset,
                has_more=offset + len(window) < len(records),
            )

        params = {"session_id": session_id, "topic": topic, "date_from": date_from,
                  "date_to": date_to, "limit": limit, "offset": offset}
        return await self._audited("get_voting_records", params, call)

    # ── Documents ────────────────────────────────────────

    async def search_documents(
        self,
        keyword: str,
        document_type: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        committee: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> PaginatedResponse[LegislativeDocument]:
        """GET /documents – keyword search with client-side filters."""

        async def call() -> PaginatedResponse[LegislativeDocument]:
            if not keyword.strip():
                raise EPAPIError("keyword is required and must not be empty", 400)

            api_params: Dict[str, Any] = {"limit": limit, "offset": offset}
            if document_type:
                api_params["work-type"] = DOCUMENT_TYPE_CODES.get(
                    document_type.upper(), document_type
                )
            if date_from:
                api_params["year"] = date_from[:4]

            items = _items(await self._get("documents", api_params))
            documents = [tf.transform_document(i) for i in items]

            needle = keyword.lower()
            documents = [
                d for d in documents
                if needle in d.title.lower()
                or needle in d.summary.lower()
                or needle in d.id.lower()
            ]
            if committee:
                wanted = committee.lower()
                documents = [
                    d for d in documents if d.committee and wanted in d.committee.lower()
                ]
            if date_to:
                documents = [d for d in documents if d.date <= date_to]

            # total/has_more follow the unfiltered server page
            return PaginatedResponse(
                data=documents,
                total=offset + len(items),
                limit=limit,
                offset=offset,
                has_more=len(items) == limit,
            )

        params = {"keyword": keyword, "document_type": document_type, "date_from": date_from,
                  "date_to": date_to, "committee": committee, "limit": limit, "offset": offset}
        return await self._audited("search_documents", params, call)

    # ── Committees ───────────────────────────────────────

    async def _committee_by_id(self, body_id: str) -> Optional[Committee]:
        try:
            items = _items(await self._get(f"corporate-bodies/{body_id}"))
        except EPAPIError as exc:
            logger.debug(f"Direct committee lookup for {body_id} failed: {exc}")
            return None
        return tf.transform_corporate_body(items[0]) if items else None

    async def _committee_from_list(self, term: str) -> Optional[Committee]:
        response = await self._get(
            "corporate-bodies",
            {"body-classification": "COMMITTEE_PARLIAMENTARY_STANDING", "limit": 50},
        )
        for item in _items(response):
            committee = tf.transform_corporate_body(item)
            if term in (committee.abbreviation, committee.id):
                return committee
        return None

    async def get_committee_info(
        self, committee_id: Optional[str] = None, abbreviation: Optional[str] = None
    ) -> Committee:
        """GET /corporate-bodies/{id}, falling back to a list search."""
        term = abbreviation or committee_id or ""

        async def call() -> Committee:
            if term:
                committee = await self._committee_by_id(term)
                if committee is not None:
                    return committee
            committee = await self._committee_from_list(term)
            if committee is None:
                raise EPAPIError(f"Committee not found: {term or 'unknown'}", 404)
            return committee

        params = {"id": committee_id, "abbreviation": abbreviation}
        return await self._audited("get_committee_info", params, call)

    # ── Questions ────────────────────────────────────────

    async def get_parliamentary_questions(
        self,
        question_type: Optional[str] = None,
        author: Optional[str] = None,
        topic: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PaginatedResponse[ParliamentaryQuestion]:
        """GET /parliamentary-questions with client-side filters."""

        async def call() -> PaginatedResponse[ParliamentaryQuestion]:
            api_params: Dict[str, Any] = {"limit": limit, "offset": offset}
            if question_type in ("WRITTEN", "ORAL"):
                api_params["work-type"] = f"QUESTION_{question_type}"
            if date_from:
                api_params["year"] = date_from[:4]

            response = await self._get("parliamentary-questions", api_params)
            questions = [tf.transform_parliamentary_question(i) for i in _items(response)]
            if author:
                wanted = author.lower()
                questions = [q for q in questions if wanted in q.author.lower()]
            if topic:
                wanted = topic.lower()
                questions = [q for q in questions if wanted in q.topic.lower()]
            if status:
                questions = [q for q in questions if q.status == status]
            if date_to:
                questions = [q for q in questions if q.date <= date_to]
            return _page(questions, limit, offset)

        params = {"type": question_type, "author": author, "topic": topic, "status": status,
                  "date_from": date_from, "date_to": date_to, "limit": limit, "offset": offset}
        return await self._audited("get_parliamentary_questions", params, call)

    # ── Procedures & events ──────────────────────────────

    async def get_procedures(
        self, year: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> PaginatedResponse[Procedure]:
        """GET /procedures – legislative procedures."""

        async def call() -> PaginatedResponse[Procedure]:
            response = await self._get(
                "procedures",
                {"format": "application/ld+json", "limit": limit, "offset": offset, "year": year},
            )
            return _page([tf.transform_procedure(i) for i in _items(response)], limit, offset)

        return await self._audited(
            "get_procedures", {"year": year, "limit": limit, "offset": offset}, call
        )

    async def get_events(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PaginatedResponse[EPEvent]:
        """GET /events – hearings, conferences and other EP events."""

        async def call() -> PaginatedResponse[EPEvent]:
            response = await self._get(
                "events",
                {"format": "application/ld+json", "limit": limit, "offset": offset,
                 "date-from": date_from, "date-to": date_to},
            )
            return _page([tf.transform_event(i) for i in _items(response)], limit, offset)

        params = {"date_from": date_from, "date_to": date_to, "limit": limit, "offset": offset}
        return await self._audited("get_events", params, call)

    # ── Feeds ────────────────────────────────────────────

    async def get_meps_feed(
        self, timeframe: Optional[str] = None, start_date: Optional[str] = None
    ) -> Dict[str, Any]:
        """GET /meps/feed – recently updated MEPs (raw JSON-LD)."""

        async def call() -> Dict[str, Any]:
            return await self._get(
                "meps/feed",
                {"format": "application/ld+json", "timeframe": timeframe,
                 "start-date": start_date},
            )

        params = {"timeframe": timeframe, "start_date": start_date}
        return await self._audited("get_meps_feed", params, call)

    async def get_procedures_feed(
        self,
        timeframe: Optional[str] = None,
        start_date: Optional[str] = None,
        process_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """GET /procedures/feed – recently updated procedures (raw JSON-LD)."""

        async def call() -> Dict[str, Any]:
            return await self._get(
                "procedures/feed",
                {"format": "application/ld+json", "timeframe": timeframe,
                 "start-date": start_date, "process-type": process_type},
            )

        params = {"timeframe": timeframe, "start_date": start_date, "process_type": process_type}
        return await self._audited("get_procedures_feed", params, call)
