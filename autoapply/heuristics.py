"""Regex/heuristic résumé parser — used when no LLM answer is usable.

Best-effort only: every field may come back empty. Placeholders, list caps
and derived totals are applied afterwards by
:func:`autoapply.resume_parser.finalize_profile`.
"""
from __future__ import annotations

import re
from datetime import datetime

from autoapply.models import CandidateProfile, Education, Experience
from autoapply.vocabulary import dedupe, find_languages, find_skills

# ── Patterns ─────────────────────────────────────────────────────────────

_UPPER = "A-ZÀ-ÖØ-Þ"
_LOWER = "a-zß-öø-ÿ"
_WORD = rf"[{_UPPER}][{_LOWER}]+"
_PARTICLE = r"(?:d[aeo]s?|de|van|von|del|di)"

_NAME_RE = re.compile(rf"^({_WORD}(?:[ -](?:{_PARTICLE} )?{_WORD}){{1,4}})(?=$|[\s,|–-])")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(
    r"(?<![\d])(?:\+\d{1,3}[\s.-]?)?\(?\d{2,3}\)?[\s.-]?\d{3,5}[\s.-]?\d{4}(?![\d])"
)
_LOCATION_RES = (
    re.compile(rf"^{_WORD}(?: {_WORD})*, ?[A-Z]{{2}}$"),
    re.compile(rf"^{_WORD}(?: (?:{_PARTICLE} )?{_WORD})*, ?{_WORD}(?: {_WORD})*$"),
)
_EXPERIENCE_RE = re.compile(
    r"^(?P<title>.{2,60}?)\s+(?:at|@|in|\||na|no|em)\s+(?P<company>.{1,60}?)"
    r"\s*(?:\s[-–|]\s|\|)\s*(?P<duration>.+)$",
    re.IGNORECASE,
)
_EDUCATION_RES = (
    re.compile(
        r"^(?P<degree>.{2,80}?)\s+(?:at|@)\s+(?P<institution>.{2,80}?)\s*[-–|,]\s*(?P<year>(?:19|20)\d{2})",
        re.IGNORECASE,
    ),
    re.compile(
        r"^(?P<degree>.{2,80}?)\s+(?:in|na|no|em)\s+(?P<institution>.{2,80}?)\s*[-–|,]\s*(?P<year>(?:19|20)\d{2})",
        re.IGNORECASE,
    ),
)
_YEAR_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")
_YEARS_SPAN_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:years?|yrs?|anos?)", re.IGNORECASE)
_MONTHS_SPAN_RE = re.compile(r"(\d+)\s*(?:months?|mes(?:es)?|mês)", re.IGNORECASE)

_SECTION_SPLIT_RE = re.compile(
    r"(?i)\b(skills|habilidades|competências|experience|experiência|experiencia|"
    r"education|educação|formação|summary|resumo|languages|idiomas)\s*:\s*"
)

_NAME_EXCLUDE = ("email", "e-mail", "@", "phone", "telefone", "cv", "resume", "résumé",
                 "curriculum", "currículo")
_TITLE_WORDS = {"engineer", "developer", "desenvolvedor", "engenheiro", "manager", "gerente",
                "analyst", "analista", "designer", "consultant", "consultor", "architect",
                "arquiteto", "scientist", "intern", "estagiário", "lead", "senior", "junior",
                "pleno", "sênior", "skills", "experience", "education", "summary"}

_EXPERIENCE_HEADERS = ("experience", "work", "employment", "career", "professional",
                       "experiência", "experiencia", "histórico profissional")
_EDUCATION_HEADERS = ("education", "academic", "degree", "university", "college",
                      "educação", "formação", "formacao")
_SUMMARY_HEADERS = ("summary", "about", "profile", "objective", "resumo", "sobre", "perfil",
                    "objetivo")
_OTHER_HEADERS = ("skills", "habilidades", "competências", "languages", "idiomas",
                  "certifications", "certificações", "projects", "projetos")

_MAX_HEADER_LEN = 40
_NAME_SCAN_LINES = 10


# ── Segmentation ─────────────────────────────────────────────────────────


def split_lines(text: str) -> list[str]:
    """Non-empty, stripped lines, with inline structure broken out.

    Emails become their own segment and ``"Experience: Dev at X"`` becomes
    ``"Experience"`` followed by ``"Dev at X"``, which lets the line-based
    rules below work on résumés that arrive flattened into one line.
    """
    segments: list[str] = []
    for raw in (text or "").splitlines():
        for piece in re.split(rf"\s*,?\s*({_EMAIL_RE.pattern})\s*,?\s*", raw):
            parts = _SECTION_SPLIT_RE.split(piece)
            # re.split with one group yields [before, header, rest, header, rest, ...]
            for part in parts:
                part = part.strip().strip(",;").strip()
                if part:
                    segments.append(part)
    return segments


def _is_header(line: str, words: tuple[str, ...]) -> bool:
    low = line.lower()
    return len(line) <= _MAX_HEADER_LEN and any(w in low for w in words)


def _is_any_header(line: str) -> bool:
    return any(
        _is_header(line, words)
        for words in (_EXPERIENCE_HEADERS, _EDUCATION_HEADERS, _SUMMARY_HEADERS, _OTHER_HEADERS)
    ) and not _EXPERIENCE_RE.match(line)


# ── Field extractors ─────────────────────────────────────────────────────


def extract_name(lines: list[str]) -> str:
    for line in lines[:_NAME_SCAN_LINES]:
        low = line.lower()
        if any(word in low for word in _NAME_EXCLUDE):
            continue
        match = _NAME_RE.match(line)
        if not match:
            continue
        candidate = match.group(1)
        if set(candidate.lower().split()) & _TITLE_WORDS:
            continue
        if find_skills(candidate):
            continue
        return candidate
    return ""


def extract_email(text: str) -> str:
    match = _EMAIL_RE.search(text or "")
    return match.group(0) if match else ""


def extract_phone(text: str) -> str | None:
    match = _PHONE_RE.search(text or "")
    return match.group(0).strip() if match else None


def extract_location(lines: list[str]) -> str | None:
    for line in lines:
        if len(line) > 60 or ":" in line or any(ch.isdigit() for ch in line):
            continue
        if find_skills(line):
            continue
        if any(p.match(line) for p in _LOCATION_RES):
            return line
    return None


def years_from_duration(duration: str, now: datetime | None = None) -> float:
    """Years spent in a role, from ``"2020-2023"``, ``"2021 - present"`` or ``"3 years"``."""
    now = now or datetime.now()
    years = [int(y) for y in _YEAR_RE.findall(duration or "")]
    if len(years) >= 2:
        return float(max(years[1] - years[0], 1))
    if len(years) == 1:
        return float(max(now.year - years[0], 1))

    total = 0.0
    span = _YEARS_SPAN_RE.search(duration or "")
    if span:
        total += float(span.group(1).replace(",", "."))
    months = _MONTHS_SPAN_RE.search(duration or "")
    if months:
        total += int(months.group(1)) / 12
    return round(total, 1) if total else 1.0


def extract_experience(lines: list[str], now: datetime | None = None) -> list[Experience]:
    found: list[Experience] = []
    seen: set[tuple[str, str]] = set()

    for i, line in enumerate(lines):
        if not _is_header(line, _EXPERIENCE_HEADERS):
            continue
        j = i + 1
        while j < min(i + 20, len(lines)):
            if _is_any_header(lines[j]) and not _is_header(lines[j], _EXPERIENCE_HEADERS):
                break
            match = _EXPERIENCE_RE.match(lines[j])
            if not match:
                j += 1
                continue

            title = match.group("title").strip()
            company = match.group("company").strip()
            duration = match.group("duration").strip()

            desc_lines: list[str] = []
            k = j + 1
            while k < min(j + 8, len(lines)):
                nxt = lines[k]
                if _EXPERIENCE_RE.match(nxt) or _is_any_header(nxt):
                    break
                if len(nxt) > 10 and not re.match(r"^\d{4}", nxt):
                    desc_lines.append(nxt)
                k += 1

            description = " ".join(desc_lines)
            technologies = find_skills(f"{title} {description}")
            exp = Experience(
                title=title,
                company=company,
                duration=duration,
                description=description,
                technologies=technologies or None,
                years_in_role=years_from_duration(duration, now),
                achievements=[],
            )
            if exp.key not in seen:
                seen.add(exp.key)
                found.append(exp)
            j = k
    return found


def extract_education(lines: list[str]) -> list[Education]:
    found: list[Education] = []
    seen: set[tuple[str, str]] = set()
    for i, line in enumerate(lines):
        if not _is_header(line, _EDUCATION_HEADERS):
            continue
        for edu_line in lines[i + 1:i + 6]:
            for pattern in _EDUCATION_RES:
                match = pattern.match(edu_line)
                if not match:
                    continue
                edu = Education(
                    degree=match.group("degree").strip(),
                    institution=match.group("institution").strip(),
                    year=match.group("year"),
                )
                if edu.key not in seen:
                    seen.add(edu.key)
                    found.append(edu)
                break
    return found


def extract_summary(lines: list[str]) -> str | None:
    for i, line in enumerate(lines):
        if not _is_header(line, _SUMMARY_HEADERS):
            continue
        body: list[str] = []
        for ln in lines[i + 1:i + 5]:
            if _is_any_header(ln):
                break
            if len(ln) > 20:
                body.append(ln)
        if body:
            return " ".join(body)[:200]
    return None


def parse(text: str, now: datetime | None = None) -> CandidateProfile:
    """Build a raw :class:`CandidateProfile` from résumé text using heuristics only."""
    lines = split_lines(text)
    return CandidateProfile(
        name=extract_name(lines),
        email=extract_email(text),
        phone=extract_phone(text),
        location=extract_location(lines),
        summary=extract_summary(lines),
        skills=dedupe(find_skills(text)),
        experience=extract_experience(lines, now),
        education=extract_education(lines),
        languages=find_languages(text) or None,
    )
