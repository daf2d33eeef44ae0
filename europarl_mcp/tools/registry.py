"""Tool registry: metadata, input schemas and dispatch."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import pydantic
from loguru import logger

from europarl_mcp.api.client import EuropeanParliamentClient
from europarl_mcp.utils.errors import MCPServerError, ToolError, ValidationError
from europarl_mcp.utils.metrics import MetricName

from . import handlers, schemas
from .handlers import ToolResult, build_error_response

Handler = Callable[[EuropeanParliamentClient, dict[str, Any]], Awaitable[ToolResult]]

_DATA_SOURCE = "Data source: European Parliament Open Data Portal."


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    params_model: type[pydantic.BaseModel]
    handler: Handler

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.params_model.model_json_schema(by_alias=True)

    def metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        "get_meps",
        "List Members of the European Parliament filtered by country, political group, "
        f"committee or active status. {_DATA_SOURCE}",
        schemas.GetMEPsParams,
        handlers.get_meps,
    ),
    ToolDefinition(
        "get_mep_details",
        f"Detailed profile of a single MEP by identifier. {_DATA_SOURCE}",
        schemas.GetMEPDetailsParams,
        handlers.get_mep_details,
    ),
    ToolDefinition(
        "get_current_meps",
        f"MEPs currently in office. {_DATA_SOURCE}",
        schemas.GetCurrentMEPsParams,
        handlers.get_current_meps,
    ),
    ToolDefinition(
        "get_plenary_sessions",
        f"Plenary sittings filtered by date range and location. {_DATA_SOURCE}",
        schemas.GetPlenarySessionsParams,
        handlers.get_plenary_sessions,
    ),
    ToolDefinition(
        "get_voting_records",
        "Roll-call vote results for a plenary session, or for the most recent sessions "
        f"when none is given. {_DATA_SOURCE}",
        schemas.GetVotingRecordsParams,
        handlers.get_voting_records,
    ),
    ToolDefinition(
        "search_documents",
        f"Search legislative documents by keyword, type, date and committee. {_DATA_SOURCE}",
        schemas.SearchDocumentsParams,
        handlers.search_documents,
    ),
    ToolDefinition(
        "get_committee_info",
        f"Committee details by identifier or abbreviation (e.g. ENVI). {_DATA_SOURCE}",
        schemas.GetCommitteeInfoParams,
        handlers.get_committee_info,
    ),
    ToolDefinition(
        "get_parliamentary_questions",
        f"Written and oral parliamentary questions with optional filters. {_DATA_SOURCE}",
        schemas.GetParliamentaryQuestionsParams,
        handlers.get_parliamentary_questions,
    ),
    ToolDefinition(
        "get_procedures",
        f"Legislative procedures, optionally for a single year. {_DATA_SOURCE}",
        schemas.GetProceduresParams,
        handlers.get_procedures,
    ),
    ToolDefinition(
        "get_events",
        f"Hearings, conferences and other EP events in a date range. {_DATA_SOURCE}",
        schemas.GetEventsParams,
        handlers.get_events,
    ),
    ToolDefinition(
        "get_meps_feed",
        f"MEPs published or updated during the given timeframe. {_DATA_SOURCE}",
        schemas.GetMEPsFeedParams,
        handlers.get_meps_feed,
    ),
    ToolDefinition(
        "get_procedures_feed",
        f"Procedures published or updated during the given timeframe. {_DATA_SOURCE}",
        schemas.GetProceduresFeedParams,
        handlers.get_procedures_feed,
    ),
)


class ToolRegistry:
    """Dispatches tool calls to their handlers and shapes failures.

    Validation, rate-limit and upstream errors become ``isError`` results
    the caller can show to a user. Only an unknown tool name raises.
    """

    def __init__(
        self,
        client: EuropeanParliamentClient,
        tools: tuple[ToolDefinition, ...] = TOOLS,
    ) -> None:
        self.client = client
        self._tools = {t.name: t for t in tools}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list_tools(self) -> list[dict[str, Any]]:
        return [t.metadata() for t in self._tools.values()]

    async def call(self, name: str, args: Optional[dict[str, Any]] = None) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(name, "dispatch", f"Unknown tool: {name}")

        metrics = self.client.metrics
        labels = {"tool": name}
        metrics.increment_counter(MetricName.TOOL_CALL_COUNT, labels=labels)
        t0 = time.monotonic()
        try:
            result = await tool.handler(self.client, args or {})
        except ValidationError as exc:
            metrics.increment_counter(MetricName.TOOL_ERROR_COUNT, labels=labels)
            logger.info(f"[{name}] {exc.message}: {exc.details}")
            return build_error_response(name, exc)
        except MCPServerError as exc:
            metrics.increment_counter(MetricName.TOOL_ERROR_COUNT, labels=labels)
            logger.warning(f"[{name}] {exc.code}: {exc.message}")
            return build_error_response(name, exc)
        except Exception as exc:
            metrics.increment_counter(MetricName.TOOL_ERROR_COUNT, labels=labels)
            wrapped = ToolError(name, "execute", "Unexpected failure", cause=exc)
            logger.opt(exception=exc).error(str(wrapped))
            return build_error_response(name, wrapped)

        logger.debug(f"[{name}] done in {(time.monotonic() - t0) * 1000:.0f}ms")
        return result
