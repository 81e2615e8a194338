"""LLM-based ranking of job postings against a candidate profile.

There is no deterministic fallback here: when the LLM is unavailable or
answers with something unparseable the error propagates to the caller.
"""
from __future__ import annotations

import json
from typing import Any

from autoapply.json_cleanup import parse_json_array
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import CandidateProfile, JobPosting, MatchResult

log = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 20
_DESCRIPTION_CHARS = 500

_SYSTEM_PROMPT = """\
You are a job matching expert. Analyze the candidate's resume data and the job
listings and give each job a match score from 0 to 100 based on:
- Skills match (40%)
- Experience relevance (30%)
- Education fit (20%)
- Location and preferences match (10%)

Return ONLY a JSON array with one object per job:
[{"job_id": "<id from the listing>", "score": 0}]
"""


def _job_brief(job: JobPosting) -> dict[str, Any]:
    return {
        "job_id": job.id,
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "skills": job.skills,
        "requirements": job.requirements,
        "description": job.description[:_DESCRIPTION_CHARS],
    }


def _clamp(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(100.0, score))


def parse_scores(items: list[Any], known_ids: set[str]) -> dict[str, float]:
    """Map job id to clamped score; unknown ids and junk entries are ignored."""
    scores: dict[str, float] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        job_id = str(item.get("job_id") or item.get("jobId") or item.get("id") or "")
        if job_id in known_ids and job_id not in scores:
            scores[job_id] = _clamp(item.get("score"))
    return scores


def rank_jobs(
    profile: CandidateProfile,
    jobs: list[JobPosting],
    llm: LLMClient,
    limit: int = DEFAULT_LIMIT,
) -> list[MatchResult]:
    """Score ``jobs`` for ``profile`` and return the best ``limit``, highest first.

    Jobs the LLM leaves out score 0. Ties keep the input order. Never more
    than ``MAX_LIMIT`` results, whatever ``limit`` asks for.
    """
    limit = min(limit, MAX_LIMIT)
    if not jobs:
        return []

    payload = {
        "resume": profile.to_dict(),
        "jobs": [_job_brief(j) for j in jobs],
    }
    raw = llm.ask(
        _SYSTEM_PROMPT,
        json.dumps(payload, ensure_ascii=False),
        temperature=0.2,
        max_tokens=min(4000, 60 * len(jobs) + 200),
    )
    items = parse_json_array(raw)
    scores = parse_scores(items, {j.id for j in jobs})

    ordered = sorted(jobs, key=lambda j: scores.get(j.id, 0.0), reverse=True)[:limit]
    results = [
        MatchResult(job=job, score=scores.get(job.id, 0.0), rank=i)
        for i, job in enumerate(ordered, start=1)
    ]
    log.info("Ranked %d job(s); top score %.0f", len(results), results[0].score if results else 0)
    return results
