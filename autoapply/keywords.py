"""Derive job-search keywords, target roles and a location from a profile."""
from __future__ import annotations

import json

from autoapply.config import DEFAULT_LOCATION
from autoapply.errors import CollaboratorUnavailable, MalformedCollaboratorResponse
from autoapply.json_cleanup import parse_json_object
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import CandidateProfile, KeywordSet
from autoapply.vocabulary import dedupe

log = get_logger(__name__)

MAX_FALLBACK_KEYWORDS = 10

_PROMPT = """\
Read the candidate profile below and list what a job search for this person should use.

Return ONLY valid JSON:
{{
  "keywords": ["every technology, tool, framework and skill mentioned anywhere in the profile"],
  "roles": ["job titles this candidate fits, most likely first"],
  "location": "the candidate's city/country, or \\"{default}\\" if unknown"
}}

Look at the skills list AND every experience description and technology list,
not only the skills section.

Profile:
{profile}
"""


def _as_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return []


def fallback_keywords(profile: CandidateProfile) -> KeywordSet:
    """Keywords straight from the profile, no LLM involved."""
    terms: list[str] = list(profile.skills)
    terms.extend((profile.experience_by_technology or {}).keys())
    for exp in profile.experience:
        terms.extend(exp.technologies or [])
    return KeywordSet(
        keywords=dedupe(terms)[:MAX_FALLBACK_KEYWORDS],
        roles=[],
        location=profile.location or DEFAULT_LOCATION,
    )


def derive_keywords(profile: CandidateProfile, llm: LLMClient | None = None) -> KeywordSet:
    """Ask the LLM for search terms; fall back to the profile's own lists."""
    if llm is None or not llm.available:
        log.info("LLM not configured — deriving keywords from profile")
        return fallback_keywords(profile)

    prompt = _PROMPT.format(
        default=DEFAULT_LOCATION,
        profile=json.dumps(profile.to_dict(), ensure_ascii=False, indent=2),
    )
    try:
        raw = llm.ask(
            "You extract job-search keywords from candidate profiles and answer in JSON.",
            prompt,
            temperature=0.2,
            max_tokens=600,
        )
        data = parse_json_object(raw)
    except (CollaboratorUnavailable, MalformedCollaboratorResponse) as exc:
        log.warning("Keyword derivation failed (%s), using profile skills", exc)
        return fallback_keywords(profile)

    keywords = dedupe(_as_list(data.get("keywords")))
    roles = dedupe(_as_list(data.get("roles")))
    location = str(data.get("location") or "").strip() or profile.location or DEFAULT_LOCATION
    if not keywords:
        keywords = fallback_keywords(profile).keywords

    log.info("Derived %d keyword(s), %d role(s), location=%s", len(keywords), len(roles), location)
    return KeywordSet(keywords=keywords, roles=roles, location=location)
