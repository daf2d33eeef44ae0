"""JSON-LD record -> domain object transformers."""

from __future__ import annotations

from europarl_mcp.data.models import (
    MEP,
    Committee,
    EPEvent,
    LegislativeDocument,
    MEPDetails,
    ParliamentaryQuestion,
    PlenarySession,
    Procedure,
    VotingRecord,
)

from .jsonld import (
    Record,
    determine_vote_outcome,
    extract_author_id,
    extract_date_value,
    extract_document_refs,
    extract_field,
    extract_location,
    extract_member_ids,
    extract_multilingual_text,
    extract_vote_count,
    first_defined,
    map_document_status,
    map_document_type,
    map_question_type,
    to_safe_string,
)

# ── MEPs ─────────────────────────────────────────────────


def transform_mep(data: Record) -> MEP:
    identifier = to_safe_string(first_defined(data, "identifier", "@id", "id"))
    raw_id = identifier or to_safe_string(data.get("id"))
    mep_id = raw_id if "/" in raw_id else f"person/{identifier or 'unknown'}"

    given = to_safe_string(first_defined(data, "givenName", "given_name"))
    family = to_safe_string(first_defined(data, "familyName", "family_name"))
    name = to_safe_string(data.get("label")) or f"{given} {family}".strip()

    # /meps does not return country or group; they default to Unknown
    country = to_safe_string(
        first_defined(data, "country", "citizenship", "nationality")
    )
    group = to_safe_string(first_defined(data, "politicalGroup", "political_group"))

    raw_committees = first_defined(data, "committees", "committeeRoles")
    committees = (
        [to_safe_string(c) for c in raw_committees]
        if isinstance(raw_committees, list)
        else []
    )

    return MEP(
        id=mep_id,
        name=name or "Unknown MEP",
        country=country or "Unknown",
        political_group=group or "Unknown",
        committees=committees,
        active=data.get("active") in (True, "true"),
        term_start=to_safe_string(first_defined(data, "termStart", "term_start")),
        email=to_safe_string(data.get("email")) or None,
        term_end=to_safe_string(first_defined(data, "termEnd", "term_end")) or None,
    )


def transform_mep_details(data: Record) -> MEPDetails:
    base = transform_mep(data)

    committees = []
    memberships = data.get("hasMembership")
    if isinstance(memberships, list):
        for membership in memberships:
            if isinstance(membership, dict):
                org = to_safe_string(membership.get("organization"))
                if org:
                    committees.append(org)

    birthday = to_safe_string(data.get("bday"))
    return MEPDetails(
        id=base.id,
        name=base.name,
        country=base.country,
        political_group=base.political_group,
        committees=committees or base.committees,
        active=base.active,
        term_start=base.term_start,
        email=base.email,
        term_end=base.term_end,
        biography=f"Born: {birthday or 'Unknown'}",
    )


# ── Plenary & votes ──────────────────────────────────────


def transform_plenary_session(data: Record) -> PlenarySession:
    return PlenarySession(
        id=extract_field(data, ["activity_id", "id"]),
        date=extract_date_value(data.get("eli-dl:activity_date")),
        location=extract_location(to_safe_string(data.get("hasLocality"))),
    )


def transform_vote_result(data: Record, session_id: str) -> VotingRecord:
    votes_for = extract_vote_count(
        first_defined(data, "had_voter_favor", "number_of_votes_favor")
    )
    votes_against = extract_vote_count(
        first_defined(data, "had_voter_against", "number_of_votes_against")
    )
    abstentions = extract_vote_count(
        first_defined(data, "had_voter_abstention", "number_of_votes_abstention")
    )
    decision = to_safe_string(
        first_defined(data, "decision_method", "had_decision_outcome")
    )
    return VotingRecord(
        id=extract_field(data, ["activity_id", "id"]),
        session_id=session_id,
        topic=extract_field(data, ["label", "notation"]) or "Unknown",
        date=extract_date_value(data.get("eli-dl:activity_date")),
        votes_for=votes_for,
        votes_against=votes_against,
        abstentions=abstentions,
        result=determine_vote_outcome(decision, votes_for, votes_against),
    )


# ── Committees ───────────────────────────────────────────


def transform_corporate_body(data: Record) -> Committee:
    body_id = extract_field(data, ["body_id", "id", "identifier"])
    name = extract_multilingual_text(
        first_defined(data, "label", "prefLabel", "skos:prefLabel")
    )
    abbreviation = extract_field(data, ["notation", "skos:notation"]) or body_id
    members = extract_member_ids(first_defined(data, "hasMembership", "org:hasMember"))
    classification = extract_field(data, ["classification", "org:classification"])

    return Committee(
        id=body_id or abbreviation,
        name=name or f"Committee {abbreviation}",
        abbreviation=abbreviation,
        members=members,
        chair=members[0] if members else "",
        vice_chairs=members[1:3],
        responsibilities=[classification.rsplit("/", 1)[-1]] if classification else [],
    )


# ── Documents & questions ────────────────────────────────


def _title(data: Record) -> str:
    return extract_multilingual_text(first_defined(data, "title_dcterms", "label", "title"))


def _document_date(data: Record) -> str:
    return extract_date_value(
        first_defined(data, "work_date_document", "date_document", "date")
    )


def transform_document(data: Record) -> LegislativeDocument:
    doc_id = extract_field(data, ["work_id", "id", "identifier"])
    title = _title(data)
    return LegislativeDocument(
        id=doc_id,
        type=map_document_type(extract_field(data, ["work_type", "ep-document-types", "type"])),
        title=title or f"Document {doc_id}",
        date=_document_date(data),
        status=map_document_status(extract_field(data, ["resource_legal_in-force", "status"])),
        summary=title,
        committee=extract_field(data, ["was_attributed_to", "committee"]) or None,
    )


def transform_parliamentary_question(data: Record) -> ParliamentaryQuestion:
    question_id = extract_field(data, ["work_id", "id", "identifier"])
    topic = _title(data) or f"Question {question_id}"
    date = _document_date(data)
    answered = data.get("was_realized_by") is not None
    return ParliamentaryQuestion(
        id=question_id,
        type=map_question_type(extract_field(data, ["work_type", "ep-document-types"])),
        author=extract_author_id(first_defined(data, "was_created_by", "created_by", "author"))
        or "Unknown",
        date=date,
        topic=topic,
        question_text=topic,
        status="ANSWERED" if answered else "PENDING",
        answer_text="Answer available - see EP document portal for full text" if answered else None,
        answer_date=date if answered else None,
    )


# ── Procedures & events ──────────────────────────────────


def transform_procedure(data: Record) -> Procedure:
    return Procedure(
        id=extract_field(data, ["identifier", "id", "process_id"]),
        title=_title(data),
        reference=extract_field(data, ["identifier", "process_id"]),
        type=extract_field(data, ["process_type", "type"]),
        subject_matter=extract_multilingual_text(first_defined(data, "subject_matter", "subject")),
        stage=extract_field(data, ["process_stage", "stage"]),
        status=extract_field(data, ["process_status", "status"]),
        date_initiated=extract_date_value(
            first_defined(data, "process_date_start", "date_start", "date")
        ),
        date_last_activity=extract_date_value(
            first_defined(data, "process_date_update", "date_update")
        ),
        responsible_committee=extract_field(data, ["was_attributed_to", "committee"]),
        rapporteur=extract_multilingual_text(data.get("rapporteur")),
        documents=extract_document_refs(first_defined(data, "had_document", "documents")),
    )


def transform_event(data: Record) -> EPEvent:
    return EPEvent(
        id=extract_field(data, ["identifier", "id"]),
        title=extract_multilingual_text(first_defined(data, "label", "title")),
        date=extract_date_value(
            first_defined(data, "activity_start_date", "date", "activity_date")
        ),
        end_date=extract_date_value(data.get("activity_end_date")),
        type=extract_field(data, ["had_activity_type", "type"]),
        location=extract_field(data, ["had_locality", "location"]),
        organizer=extract_field(data, ["was_organized_by", "organizer"]),
        status=extract_field(data, ["activity_status", "status"]),
    )
