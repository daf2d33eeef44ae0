"""Audit trail of every data access against the EP API."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


@dataclass
class AuditLogEntry:
    action: str
    params: dict[str, Any] = field(default_factory=dict)
    success: bool = True
    count: Optional[int] = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


class AuditLogger:
    """Keeps audit entries in memory and mirrors them to the audit sink.

    Entries go through ``logger.bind(audit=True)`` so ``setup_logger``
    can route them to their own serialised file.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        self.max_entries = max_entries
        self._logs: list[AuditLogEntry] = []

    def log(self, entry: AuditLogEntry) -> None:
        self._logs.append(entry)
        if len(self._logs) > self.max_entries:
            del self._logs[: len(self._logs) - self.max_entries]
        logger.bind(audit=True).info(json.dumps(entry.to_dict(), default=str))

    def log_data_access(
        self,
        action: str,
        params: dict[str, Any],
        count: int,
        duration_ms: Optional[float] = None,
    ) -> None:
        self.log(
            AuditLogEntry(
                action=action,
                params=dict(params),
                success=True,
                count=count,
                duration_ms=duration_ms,
            )
        )

    def log_error(
        self,
        action: str,
        params: dict[str, Any],
        error: str,
        duration_ms: Optional[float] = None,
    ) -> None:
        self.log(
            AuditLogEntry(
                action=action,
                params=dict(params),
                success=False,
                error=error,
                duration_ms=duration_ms,
            )
        )

    def get_logs(self) -> list[AuditLogEntry]:
        return list(self._logs)

    def clear(self) -> None:
        self._logs.clear()
