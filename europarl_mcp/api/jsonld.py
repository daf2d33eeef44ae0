"""Helpers for pulling plain values out of EP API JSON-LD records."""

from __future__ import annotations

import re
from typing import Any

from europarl_mcp.data.models import DocumentStatus, DocumentType

Record = dict[str, Any]


def to_safe_string(value: Any) -> str:
    """Stringify scalars; anything else (None, dicts, lists) becomes ''."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def first_defined(data: Record, *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def extract_field(data: Record, keys: list[str]) -> str:
    """First non-null value among *keys*, as a string."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return to_safe_string(value)
    return ""


def _date_part(value: str) -> str:
    return value.split("T", 1)[0]


def extract_date_value(value: Any) -> str:
    """``2024-01-15T09:00:00`` or ``{"@value": ...}`` -> ``2024-01-15``."""
    if isinstance(value, str):
        return _date_part(value)
    if isinstance(value, dict):
        inner = value.get("@value")
        if isinstance(inner, str):
            return _date_part(inner)
    return ""


def extract_text_from_lang_array(items: list[Any]) -> str:
    """English (or language-neutral) entry, else the first one present."""
    fallback = ""
    for item in items:
        if not isinstance(item, dict):
            continue
        lang = to_safe_string(item.get("@language"))
        text = to_safe_string(item.get("@value"))
        if lang in ("en", "mul"):
            return text
        if not fallback:
            fallback = text
    return fallback


def extract_multilingual_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return to_safe_string(value)
    if isinstance(value, list):
        return extract_text_from_lang_array(value)
    if isinstance(value, dict):
        for key in ("en", "@value", "mul"):
            if value.get(key) is not None:
                return to_safe_string(value[key])
    return ""


def extract_member_ids(memberships: Any) -> list[str]:
    members: list[str] = []
    if not isinstance(memberships, list):
        return members
    for m in memberships:
        if isinstance(m, str):
            members.append(m)
        elif isinstance(m, dict):
            member_id = to_safe_string(first_defined(m, "person", "id", "@id"))
            if member_id:
                members.append(member_id)
    return members


def extract_author_id(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list) and value:
        return extract_author_id(value[0])
    if isinstance(value, dict):
        return to_safe_string(first_defined(value, "@id", "id"))
    return ""


def extract_document_refs(docs: Any) -> list[str]:
    if isinstance(docs, str):
        return [docs]
    if not isinstance(docs, list):
        return []
    refs = []
    for d in docs:
        if isinstance(d, dict):
            d = first_defined(d, "id", "identifier")
        ref = to_safe_string(d)
        if ref:
            refs.append(ref)
    return refs


def extract_location(locality_url: str) -> str:
    if "FRA_SXB" in locality_url:
        return "Strasbourg"
    if "BEL_BRU" in locality_url:
        return "Brussels"
    return "Unknown"


def extract_vote_count(value: Any) -> int:
    """Vote tallies arrive as ints, numeric strings, voter lists or @value."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = re.match(r"\s*[-+]?\d+", value)
        return int(match.group()) if match else 0
    if isinstance(value, list):
        return len(value)
    if isinstance(value, dict) and "@value" in value:
        return extract_vote_count(value["@value"])
    return 0


def determine_vote_outcome(decision: str, votes_for: int, votes_against: int) -> str:
    decision = decision.upper()
    if "ADOPTED" in decision or "APPROVED" in decision:
        return "ADOPTED"
    if "REJECTED" in decision:
        return "REJECTED"
    return "ADOPTED" if votes_for >= votes_against else "REJECTED"


def map_document_type(raw_type: str) -> str:
    normalized = (raw_type or "REPORT").rsplit("/", 1)[-1].upper()
    for doc_type in DocumentType:
        if doc_type.value in normalized:
            return doc_type.value
    return DocumentType.REPORT.value


def map_document_status(raw_status: str) -> str:
    upper = raw_status.upper()
    for status in DocumentStatus:
        if status.value in upper:
            return status.value
    return DocumentStatus.SUBMITTED.value


def map_question_type(work_type: str) -> str:
    upper = work_type.upper()
    if any(tag in upper for tag in ("ORAL", "INTERPELLATION", "QUESTION_TIME")):
        return "ORAL"
    return "WRITTEN"
