"""Generate tailored cover letters with the LLM (or a fallback template).

The posting's language (en/pt/es) decides the prompt, the fallback template
and the email subject. A generated letter that fails :func:`validate_letter`
is replaced by the template for that language; callers see which one they got
through :attr:`CoverLetter.used_fallback`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from autoapply.errors import CollaboratorUnavailable, WeakGeneration
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import CandidateProfile, JobPosting

log = get_logger(__name__)

LANGUAGES = ("en", "pt", "es")
DEFAULT_LANGUAGE = "pt"

_MIN_LETTER_CHARS = 100
_YEARS_RE = re.compile(r"\b\d+(?:[.,]\d+)?\+?\s*(?:years?|anos?|años?)\b", re.IGNORECASE)

_LANGUAGE_NAMES = {
    "en": ("en", "english", "inglês", "ingles"),
    "pt": ("pt", "portuguese", "português", "portugues"),
    "es": ("es", "spanish", "espanhol", "español", "espanol"),
}

SUBJECTS = {
    "pt": "Candidatura para {title} - {name}",
    "en": "Application for {title} - {name}",
    "es": "Solicitud para {title} - {name}",
}

_STYLE = {
    "pt": {
        "language": "Brazilian Portuguese",
        "greeting": "Prezado(a) recrutador(a),",
        "closing": "Atenciosamente,",
    },
    "en": {
        "language": "English",
        "greeting": "Dear Hiring Manager,",
        "closing": "Best regards,",
    },
    "es": {
        "language": "Spanish",
        "greeting": "Estimado(a) reclutador(a),",
        "closing": "Atentamente,",
    },
}

_FALLBACK = {
    "pt": """{greeting}

Tenho grande interesse na vaga de {title} na {company} e gostaria de apresentar minha candidatura.

{experience}Minhas principais competências incluem {skills}, que se alinham aos requisitos da posição.

Ficarei feliz em conversar sobre como posso contribuir com a equipe da {company}.

{closing}
{name}""",
    "en": """{greeting}

I am writing to apply for the {title} position at {company}.

{experience}My core skills include {skills}, which align well with the requirements of this role.

I would welcome the opportunity to discuss how my background can contribute to the {company} team.

{closing}
{name}""",
    "es": """{greeting}

Me interesa mucho la vacante de {title} en {company} y me gustaría presentar mi candidatura.

{experience}Mis principales competencias incluyen {skills}, que se alinean con los requisitos del puesto.

Me encantaría conversar sobre cómo puedo contribuir al equipo de {company}.

{closing}
{name}""",
}

_EXPERIENCE_LINE = {
    "pt": "Minha experiência mais recente foi como {title} na {company}{years}. ",
    "en": "Most recently I worked as {title} at {company}{years}. ",
    "es": "Mi experiencia más reciente fue como {title} en {company}{years}. ",
}
_YEARS_SUFFIX = {
    "pt": ", somando {years} anos de experiência profissional",
    "en": ", adding up to {years} years of professional experience",
    "es": ", sumando {years} años de experiencia profesional",
}
_NO_SKILLS = {"pt": "minha experiência profissional", "en": "my professional experience",
              "es": "mi experiencia profesional"}

_PROMPT = """\
Write a cover letter in {language} for the job below.

CANDIDATE
Name: {name}
Location: {location}
Total experience: {years} years
Skills: {skills}
Experience: {experience}
Summary: {summary}

JOB
Title: {title}
Company: {company}
Location: {job_location}
Requirements: {requirements}
Description (excerpt): {description}

INSTRUCTIONS
- 250 to 300 words, exactly four paragraphs:
  1. introduction and interest in the {title} role;
  2. how the candidate's skills match the requirements;
  3. concrete achievements from the experience above;
  4. interest in {company} and a clear call to action.
- Cite specific technologies and years of experience from the candidate data.
- Start with "{greeting}" and end with "{closing}" followed by the name {name}.
- Do not use placeholders like [Your Name]; do not invent facts.
"""


@dataclass
class CoverLetter:
    text: str
    language: str
    used_fallback: bool = False


def _years(profile: CandidateProfile) -> str:
    total = profile.total_years_experience or 0
    return f"{total:g}"


def detect_language(job: JobPosting, llm: LLMClient | None) -> str:
    """Classify the posting as en/pt/es with a single-token LLM call; ``pt`` on failure."""
    if llm is None or not llm.available:
        return DEFAULT_LANGUAGE
    sample = f"{job.title}\n{job.description[:800]}"
    try:
        reply = llm.ask(
            "Identify the language of the text. Answer with one code only: en, pt or es.",
            sample,
            temperature=0.0,
            max_tokens=3,
        )
    except CollaboratorUnavailable as exc:
        log.warning("Language detection failed (%s), assuming %s", exc, DEFAULT_LANGUAGE)
        return DEFAULT_LANGUAGE

    answer = reply.strip().strip(".").lower()
    for code, names in _LANGUAGE_NAMES.items():
        if answer in names or answer[:2] == code:
            return code
    log.debug("Unrecognized language answer %r, assuming %s", reply, DEFAULT_LANGUAGE)
    return DEFAULT_LANGUAGE


def build_subject(profile: CandidateProfile, job: JobPosting, language: str = DEFAULT_LANGUAGE) -> str:
    template = SUBJECTS.get(language, SUBJECTS[DEFAULT_LANGUAGE])
    return template.format(title=job.title, name=profile.name)


def validate_letter(letter: str, profile: CandidateProfile, job: JobPosting) -> str:
    """Return ``letter`` stripped, or raise :class:`WeakGeneration`."""
    text = (letter or "").strip()
    low = text.lower()
    if len(text) <= _MIN_LETTER_CHARS:
        raise WeakGeneration(f"Cover letter too short ({len(text)} chars)")
    if profile.name.lower() not in low:
        raise WeakGeneration("Cover letter does not name the candidate")
    anchors = [job.company, job.title]
    if not (_YEARS_RE.search(text) or any(a and a.lower() in low for a in anchors)):
        raise WeakGeneration("Cover letter mentions neither experience, company nor title")
    return text


def fallback_letter(profile: CandidateProfile, job: JobPosting, language: str = DEFAULT_LANGUAGE) -> str:
    """Template letter using the candidate's name, top skills and latest position."""
    language = language if language in _FALLBACK else DEFAULT_LANGUAGE
    style = _STYLE[language]

    experience = ""
    if profile.experience:
        latest = profile.experience[0]
        years = ""
        if profile.total_years_experience:
            years = _YEARS_SUFFIX[language].format(years=_years(profile))
        experience = _EXPERIENCE_LINE[language].format(
            title=latest.title, company=latest.company, years=years,
        )

    skills = ", ".join(profile.skills[:5]) or _NO_SKILLS[language]
    return _FALLBACK[language].format(
        greeting=style["greeting"],
        closing=style["closing"],
        title=job.title,
        company=job.company,
        experience=experience,
        skills=skills,
        name=profile.name,
    )


def _prompt(profile: CandidateProfile, job: JobPosting, language: str) -> str:
    style = _STYLE[language]
    experience = "; ".join(
        f"{e.title} at {e.company} ({e.duration}; {', '.join(e.technologies or [])})"
        for e in profile.experience
    )
    return _PROMPT.format(
        language=style["language"],
        greeting=style["greeting"],
        closing=style["closing"],
        name=profile.name,
        location=profile.location or "not specified",
        years=_years(profile),
        skills=", ".join(profile.skills) or "not specified",
        experience=experience or "not specified",
        summary=profile.summary or "not available",
        title=job.title,
        company=job.company,
        job_location=job.location or "remote",
        requirements=", ".join(job.requirements) or "not specified",
        description=job.description[:1500],
    )


def generate_cover_letter(
    profile: CandidateProfile,
    job: JobPosting,
    llm: LLMClient | None,
    language: str | None = None,
) -> CoverLetter:
    """Letter for ``job`` in the posting's language; never raises for LLM problems."""
    language = language if language in LANGUAGES else detect_language(job, llm)

    if llm is None or not llm.available:
        log.debug("No LLM configured — using template cover letter")
        return CoverLetter(fallback_letter(profile, job, language), language, used_fallback=True)

    try:
        raw = llm.ask(
            "You write concise, specific and persuasive cover letters.",
            _prompt(profile, job, language),
            temperature=0.7,
            max_tokens=900,
        )
        text = validate_letter(raw, profile, job)
    except (CollaboratorUnavailable, WeakGeneration) as exc:
        log.warning("Cover letter generation failed (%s), using template", exc)
        return CoverLetter(fallback_letter(profile, job, language), language, used_fallback=True)

    log.info("Cover letter generated for %s @ %s (%s)", job.title, job.company, language)
    return CoverLetter(text, language)
