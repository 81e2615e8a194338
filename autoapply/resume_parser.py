"""Turn résumé text into a structured :class:`CandidateProfile`.

Two strategies share the :class:`ProfileStrategy` interface: the LLM one
(primary) and the regex/heuristic one (fallback). :class:`ExtractionPolicy`
picks between them. Whatever strategy produced the profile, it goes through
:func:`finalize_profile` before it leaves this module, so callers always get
capped lists, consistent totals and non-empty name/email.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from autoapply import heuristics
from autoapply.config import Settings
from autoapply.errors import CollaboratorUnavailable, MalformedCollaboratorResponse
from autoapply.json_cleanup import parse_json_object
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import CandidateProfile, Education, Experience
from autoapply.vocabulary import dedupe

log = get_logger(__name__)

NAME_PLACEHOLDER = "Nome não encontrado"
EMAIL_PLACEHOLDER = "email@example.com"

MAX_SKILLS = 15
MAX_EXPERIENCE = 5
MAX_EDUCATION = 3


class ProfileStrategy(ABC):
    name: str = "base"

    @abstractmethod
    def extract(self, text: str) -> CandidateProfile:
        ...


# ── LLM strategy ─────────────────────────────────────────────────────────

_SYSTEM_PROMPT = (
    "You are a resume parser. You answer with a single JSON object and nothing else. "
    "Only include information that is actually written in the resume; never invent "
    "values or use placeholders. Leave a field empty when the resume does not say."
)

_FULL_PROMPT = """\
Extract the candidate profile from the resume text below.
Return ONLY valid JSON with exactly these keys:

{{
  "name": "",
  "email": "",
  "phone": "",
  "location": "",
  "summary": "",
  "skills": [],
  "experience": [
    {{"title": "", "company": "", "duration": "", "description": "",
      "technologies": [], "yearsInRole": 0, "achievements": []}}
  ],
  "education": [{{"degree": "", "institution": "", "year": "", "description": ""}}],
  "languages": [],
  "totalYearsExperience": 0,
  "experienceByTechnology": {{"Technology": 0}}
}}

Rules:
- "skills" lists every technology, tool and framework mentioned anywhere.
- "yearsInRole" is the length of each position in years, from its dates.
- "experienceByTechnology" maps each technology to the years of the positions that used it.
- Write text fields in the language of the resume.

Resume text:
{resume_text}
"""

_CHUNK_PROMPT = """\
This is part {part} of {total} of a longer resume. Extract only what appears in
this part. Return ONLY valid JSON with exactly these keys:

{{
  "name": "",
  "email": "",
  "skills": [],
  "experience": [
    {{"title": "", "company": "", "duration": "", "description": "",
      "technologies": [], "yearsInRole": 0}}
  ]
}}

Resume text (part {part}):
{resume_text}
"""


def split_chunks(text: str, size: int, limit: int) -> list[str]:
    """Sequential ``size``-character slices of ``text``, at most ``limit`` of them."""
    return [text[i:i + size] for i in range(0, len(text), size)][:limit]


def merge_profiles(parts: list[CandidateProfile]) -> CandidateProfile:
    """Combine per-chunk profiles.

    Singular fields keep the first non-empty value, summaries are joined,
    list fields are unioned by natural key, and numeric totals are summed.
    """
    merged = CandidateProfile(name="", email="")
    summaries: list[str] = []
    skills: list[str] = []
    languages: list[str] = []
    exp_seen: set[tuple[str, str]] = set()
    edu_seen: set[tuple[str, str]] = set()
    total = 0.0
    have_total = False
    by_tech: dict[str, float] = {}

    for part in parts:
        merged.name = merged.name or part.name
        merged.email = merged.email or part.email
        merged.phone = merged.phone or part.phone
        merged.location = merged.location or part.location
        if part.summary:
            summaries.append(part.summary)
        skills.extend(part.skills)
        languages.extend(part.languages or [])
        for exp in part.experience:
            if exp.key not in exp_seen:
                exp_seen.add(exp.key)
                merged.experience.append(exp)
        for edu in part.education:
            if edu.key not in edu_seen:
                edu_seen.add(edu.key)
                merged.education.append(edu)
        if part.total_years_experience is not None:
            total += part.total_years_experience
            have_total = True
        for tech, years in (part.experience_by_technology or {}).items():
            by_tech[tech] = by_tech.get(tech, 0.0) + years

    merged.summary = " ".join(summaries) or None
    merged.skills = dedupe(skills)
    merged.languages = dedupe(languages) or None
    merged.total_years_experience = total if have_total else None
    merged.experience_by_technology = by_tech or None
    return merged


class LLMProfileStrategy(ProfileStrategy):
    name = "llm"

    def __init__(
        self,
        llm: LLMClient,
        *,
        chunk_threshold: int = 8000,
        chunk_size: int = 6000,
        max_chunks: int = 2,
    ) -> None:
        self.llm = llm
        self.chunk_threshold = chunk_threshold
        self.chunk_size = chunk_size
        self.max_chunks = max_chunks

    def _request(self, prompt: str, max_tokens: int) -> CandidateProfile:
        raw = self.llm.ask(_SYSTEM_PROMPT, prompt, temperature=0.1, max_tokens=max_tokens)
        return CandidateProfile.from_dict(parse_json_object(raw))

    def extract(self, text: str) -> CandidateProfile:
        if len(text) <= self.chunk_threshold:
            log.info("Parsing resume with LLM (%s)", self.llm.model)
            return self._request(_FULL_PROMPT.format(resume_text=text), max_tokens=2000)

        chunks = split_chunks(text, self.chunk_size, self.max_chunks)
        log.info(
            "Resume is %d chars — parsing first %d chunk(s) of %d chars with LLM",
            len(text), len(chunks), self.chunk_size,
        )
        parts = [
            self._request(
                _CHUNK_PROMPT.format(part=i, total=len(chunks), resume_text=chunk),
                max_tokens=1500,
            )
            for i, chunk in enumerate(chunks, start=1)
        ]
        return merge_profiles(parts)


class HeuristicProfileStrategy(ProfileStrategy):
    name = "heuristic"

    def extract(self, text: str) -> CandidateProfile:
        log.info("Parsing resume with heuristic extractor")
        return heuristics.parse(text)


# ── Post-processing ──────────────────────────────────────────────────────


def finalize_profile(profile: CandidateProfile) -> CandidateProfile:
    """Return a copy with derived totals, capped lists and placeholder name/email.

    Totals are always recomputed from the experiences: each experience gets
    ``years_in_role`` (from its duration when missing), the total is their
    sum and ``experience_by_technology`` sums them per listed technology.
    """
    experience: list[Experience] = []
    seen: set[tuple[str, str]] = set()
    for exp in profile.experience:
        if not (exp.title or exp.company) or exp.key in seen:
            continue
        seen.add(exp.key)
        years = exp.years_in_role
        if years is None or years <= 0:
            years = heuristics.years_from_duration(exp.duration)
        experience.append(Experience(
            title=exp.title,
            company=exp.company,
            duration=exp.duration,
            description=exp.description,
            technologies=dedupe(exp.technologies or []) or None,
            years_in_role=years,
            achievements=list(exp.achievements) if exp.achievements is not None else None,
        ))
    experience = experience[:MAX_EXPERIENCE]

    education: list[Education] = []
    edu_seen: set[tuple[str, str]] = set()
    for edu in profile.education:
        if not (edu.degree or edu.institution) or edu.key in edu_seen:
            continue
        edu_seen.add(edu.key)
        education.append(edu)

    by_tech: dict[str, float] = {}
    for exp in experience:
        for tech in exp.technologies or []:
            by_tech[tech] = by_tech.get(tech, 0.0) + (exp.years_in_role or 0.0)

    return CandidateProfile(
        name=profile.name.strip() or NAME_PLACEHOLDER,
        email=profile.email.strip() or EMAIL_PLACEHOLDER,
        phone=profile.phone,
        location=profile.location,
        summary=profile.summary,
        skills=dedupe(profile.skills)[:MAX_SKILLS],
        experience=experience,
        education=education[:MAX_EDUCATION],
        languages=dedupe(profile.languages or []) or None,
        total_years_experience=sum(e.years_in_role or 0.0 for e in experience) if experience else None,
        experience_by_technology=by_tech or None,
    )


# ── Policy ───────────────────────────────────────────────────────────────


_CONTACT_FIELDS = ("name", "email", "phone", "location")


def _missing_contact(profile: CandidateProfile) -> bool:
    return any(not (getattr(profile, f) or "").strip() for f in _CONTACT_FIELDS)


def _fill_contact(profile: CandidateProfile, backup: CandidateProfile) -> None:
    """Copy contact fields the LLM left empty from the heuristic parse."""
    for field in _CONTACT_FIELDS:
        if not (getattr(profile, field) or "").strip() and getattr(backup, field):
            setattr(profile, field, getattr(backup, field))


class ExtractionPolicy:
    """Choose the extraction strategy and fall back when the LLM lets us down."""

    def __init__(
        self,
        primary: ProfileStrategy | None,
        fallback: ProfileStrategy | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback or HeuristicProfileStrategy()

    @classmethod
    def from_settings(cls, settings: Settings, llm: LLMClient | None) -> "ExtractionPolicy":
        primary = None
        if llm is not None and llm.available:
            primary = LLMProfileStrategy(
                llm,
                chunk_threshold=settings.chunk_threshold,
                chunk_size=settings.chunk_size,
                max_chunks=settings.max_chunks,
            )
        return cls(primary)

    def extract(self, text: str) -> tuple[CandidateProfile, str]:
        """Return the finalized profile and the name of the strategy that produced it."""
        strategy: ProfileStrategy = self.fallback
        profile: CandidateProfile | None = None
        if self.primary is not None:
            try:
                profile = self.primary.extract(text)
                strategy = self.primary
            except (CollaboratorUnavailable, MalformedCollaboratorResponse) as exc:
                log.warning("LLM parsing failed (%s), falling back to heuristic", exc)

        if profile is None:
            profile = self.fallback.extract(text)
        elif _missing_contact(profile):
            _fill_contact(profile, self.fallback.extract(text))

        profile = finalize_profile(profile)
        log.info(
            "%s extraction complete — name=%s, skills=%d, experience=%d",
            strategy.name.capitalize(), profile.name, len(profile.skills), len(profile.experience),
        )
        return profile, strategy.name


def parse_resume(text: str, llm: LLMClient | None = None, settings: Settings | None = None) -> CandidateProfile:
    """Extract a finalized :class:`CandidateProfile` from résumé text."""
    settings = settings or Settings()
    profile, _ = ExtractionPolicy.from_settings(settings, llm).extract(text)
    return profile

