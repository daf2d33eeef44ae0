"""Health snapshot built from the rate limiter and collected metrics."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from europarl_mcp.api.rate_limiter import TokenBucketRateLimiter
from europarl_mcp.utils.metrics import MetricName, MetricsService

# Bucket utilisation above which the service reports itself degraded
DEGRADED_UTILIZATION_PCT = 90


@dataclass
class HealthStatus:
    status: str  # healthy | degraded | unhealthy
    ep_api_reachable: bool
    cache_populated: bool
    cache_description: str
    rate_limiter: dict
    timestamp: str
    uptime_ms: int

    def to_dict(self) -> dict:
        return asdict(self)


class HealthService:
    def __init__(
        self, rate_limiter: TokenBucketRateLimiter, metrics: MetricsService
    ) -> None:
        self.rate_limiter = rate_limiter
        self.metrics = metrics
        self._started = time.monotonic()

    def check_health(self) -> HealthStatus:
        limiter = self.rate_limiter.status()
        reachable = self._is_api_reachable()

        hits = int(self.metrics.get_metric(MetricName.EP_CACHE_HIT_COUNT) or 0)
        misses = int(self.metrics.get_metric(MetricName.EP_CACHE_MISS_COUNT) or 0)
        total = hits + misses
        if total:
            description = f"{hits} hits / {misses} misses ({total} total)"
        else:
            description = "No cache activity yet"

        if not reachable:
            status = "unhealthy"
        elif limiter.utilization_percent > DEGRADED_UTILIZATION_PCT:
            status = "degraded"
        else:
            status = "healthy"

        return HealthStatus(
            status=status,
            ep_api_reachable=reachable,
            cache_populated=total > 0,
            cache_description=description,
            rate_limiter=limiter._asdict(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_ms=int((time.monotonic() - self._started) * 1000),
        )

    def _is_api_reachable(self) -> bool:
        calls = self.metrics.get_metric(MetricName.EP_API_CALL_COUNT) or 0
        errors = self.metrics.get_metric(MetricName.EP_API_ERROR_COUNT) or 0
        if calls == 0:
            # No calls yet – assume reachable
            return True
        return errors < calls
