"""Tool handlers: validate arguments, call the EP client, wrap the result.

Each handler takes the shared ``EuropeanParliamentClient`` and the raw
argument mapping sent by the caller. Arguments that fail the pydantic model
raise ``ValidationError`` with one entry per offending field; client
failures propagate unchanged so the registry can turn them into error
results.
"""

from __future__ import annotations

import json
from typing import Any, TypedDict, TypeVar

import pydantic

from europarl_mcp.api.client import EuropeanParliamentClient
from europarl_mcp.data.models import to_payload
from europarl_mcp.utils.errors import ValidationError, format_error

from .schemas import (
    GetCommitteeInfoParams,
    GetCurrentMEPsParams,
    GetEventsParams,
    GetMEPDetailsParams,
    GetMEPsFeedParams,
    GetMEPsParams,
    GetParliamentaryQuestionsParams,
    GetPlenarySessionsParams,
    GetProceduresFeedParams,
    GetProceduresParams,
    GetVotingRecordsParams,
    SearchDocumentsParams,
)


class TextContent(TypedDict):
    type: str
    text: str


class ToolResult(TypedDict, total=False):
    content: list[TextContent]
    isError: bool


Params = TypeVar("Params", bound=pydantic.BaseModel)


def parse_args(model: type[Params], args: dict[str, Any]) -> Params:
    """Validate *args* against *model*, raising :class:`ValidationError`."""
    try:
        return model.model_validate(args)
    except pydantic.ValidationError as exc:
        fields = [
            {"field": ".".join(str(p) for p in e["loc"]) or "(root)", "message": e["msg"]}
            for e in exc.errors()
        ]
        raise ValidationError("Invalid parameters", {"fields": fields}) from exc


# ── Response builders ────────────────────────────────────


def build_tool_response(data: Any) -> ToolResult:
    """Serialise *data* (dataclasses included) into a text result."""
    text = json.dumps(to_payload(data), indent=2, ensure_ascii=False)
    return {"content": [{"type": "text", "text": text}]}


def build_error_response(tool_name: str, error: BaseException) -> ToolResult:
    """Error result with a safe message; structured details are kept."""
    formatted = format_error(error)
    payload: dict[str, Any] = {"error": formatted["message"], "code": formatted["code"]}
    if "details" in formatted:
        payload["details"] = formatted["details"]
    payload["toolName"] = tool_name
    return {
        "content": [{"type": "text", "text": json.dumps(payload, indent=2)}],
        "isError": True,
    }


# ── MEPs ─────────────────────────────────────────────────


async def get_meps(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetMEPsParams, args)
    result = await client.get_meps(
        country=p.country,
        group=p.group,
        committee=p.committee,
        active=p.active,
        limit=p.limit,
        offset=p.offset,
    )
    return build_tool_response(result)


async def get_mep_details(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetMEPDetailsParams, args)
    return build_tool_response(await client.get_mep_details(p.id))


async def get_current_meps(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetCurrentMEPsParams, args)
    return build_tool_response(await client.get_current_meps(limit=p.limit, offset=p.offset))


# ── Plenary & votes ──────────────────────────────────────


async def get_plenary_sessions(
    client: EuropeanParliamentClient, args: dict[str, Any]
) -> ToolResult:
    p = parse_args(GetPlenarySessionsParams, args)
    result = await client.get_plenary_sessions(
        date_from=p.date_from,
        date_to=p.date_to,
        location=p.location,
        limit=p.limit,
        offset=p.offset,
    )
    return build_tool_response(result)


async def get_voting_records(
    client: EuropeanParliamentClient, args: dict[str, Any]
) -> ToolResult:
    p = parse_args(GetVotingRecordsParams, args)
    result = await client.get_voting_records(
        session_id=p.session_id,
        topic=p.topic,
        date_from=p.date_from,
        date_to=p.date_to,
        limit=p.limit,
        offset=p.offset,
    )
    return build_tool_response(result)


# ── Documents, committees, questions ─────────────────────


async def search_documents(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(SearchDocumentsParams, args)
    result = await client.search_documents(
        keyword=p.keyword,
        document_type=p.document_type,
        date_from=p.date_from,
        date_to=p.date_to,
        committee=p.committee,
        limit=p.limit,
        offset=p.offset,
    )
    return build_tool_response(result)


async def get_committee_info(
    client: EuropeanParliamentClient, args: dict[str, Any]
) -> ToolResult:
    p = parse_args(GetCommitteeInfoParams, args)
    result = await client.get_committee_info(committee_id=p.id, abbreviation=p.abbreviation)
    return build_tool_response(result)


async def get_parliamentary_questions(
    client: EuropeanParliamentClient, args: dict[str, Any]
) -> ToolResult:
    p = parse_args(GetParliamentaryQuestionsParams, args)
    result = await client.get_parliamentary_questions(
        question_type=p.type,
        author=p.author,
        topic=p.topic,
        status=p.status,
        date_from=p.date_from,
        date_to=p.date_to,
        limit=p.limit,
        offset=p.offset,
    )
    return build_tool_response(result)


# ── Procedures, events, feeds ────────────────────────────


async def get_procedures(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetProceduresParams, args)
    result = await client.get_procedures(year=p.year, limit=p.limit, offset=p.offset)
    return build_tool_response(result)


async def get_events(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetEventsParams, args)
    result = await client.get_events(
        date_from=p.date_from, date_to=p.date_to, limit=p.limit, offset=p.offset
    )
    return build_tool_response(result)


async def get_meps_feed(client: EuropeanParliamentClient, args: dict[str, Any]) -> ToolResult:
    p = parse_args(GetMEPsFeedParams, args)
    result = await client.get_meps_feed(
        timeframe=p.timeframe.value, start_date=p.start_date
    )
    return build_tool_response(result)


async def get_procedures_feed(
    client: EuropeanParliamentClient, args: dict[str, Any]
) -> ToolResult:
    p = parse_args(GetProceduresFeedParams, args)
    result = await client.get_procedures_feed(
        timeframe=p.timeframe.value,
        start_date=p.start_date,
        process_type=p.process_type,
    )
    return build_tool_response(result)
