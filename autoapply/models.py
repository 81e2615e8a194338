"""Data models for candidate profiles, job postings, matches and applications."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any


def _str_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class Experience:
    title: str
    company: str
    duration: str = ""
    description: str = ""
    technologies: list[str] | None = None
    years_in_role: float | None = None
    achievements: list[str] | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.title.strip().lower(), self.company.strip().lower())

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "title": self.title,
            "company": self.company,
            "duration": self.duration,
            "description": self.description,
            "technologies": self.technologies,
            "years_in_role": self.years_in_role,
            "achievements": self.achievements,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Experience":
        techs = _str_list(data.get("technologies"))
        achievements = _str_list(data.get("achievements"))
        return cls(
            title=str(data.get("title") or "").strip(),
            company=str(data.get("company") or "").strip(),
            duration=str(data.get("duration") or "").strip(),
            description=str(data.get("description") or "").strip(),
            technologies=techs or None,
            years_in_role=_opt_float(data.get("years_in_role", data.get("yearsInRole"))),
            achievements=achievements or None,
        )


@dataclass
class Education:
    degree: str
    institution: str
    year: str = ""
    description: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.degree.strip().lower(), self.institution.strip().lower())

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "degree": self.degree,
            "institution": self.institution,
            "year": self.year,
            "description": self.description,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Education":
        return cls(
            degree=str(data.get("degree") or "").strip(),
            institution=str(data.get("institution") or "").strip(),
            year=str(data.get("year") or "").strip(),
            description=_opt_str(data.get("description")),
        )


@dataclass
class CandidateProfile:
    name: str
    email: str
    phone: str | None = None
    location: str | None = None
    summary: str | None = None
    skills: list[str] = field(default_factory=list)
    experience: list[Experience] = field(default_factory=list)
    education: list[Education] = field(default_factory=list)
    languages: list[str] | None = None
    total_years_experience: float | None = None
    experience_by_technology: dict[str, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "summary": self.summary,
            "skills": list(self.skills),
            "experience": [e.to_dict() for e in self.experience],
            "education": [e.to_dict() for e in self.education],
            "languages": self.languages,
            "total_years_experience": self.total_years_experience,
            "experience_by_technology": self.experience_by_technology,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateProfile":
        by_tech_raw = data.get("experience_by_technology", data.get("experienceByTechnology")) or {}
        by_tech: dict[str, float] = {}
        if isinstance(by_tech_raw, dict):
            for tech, years in by_tech_raw.items():
                value = _opt_float(years)
                if value is not None and str(tech).strip():
                    by_tech[str(tech).strip()] = value
        return cls(
            name=str(data.get("name") or "").strip(),
            email=str(data.get("email") or "").strip(),
            phone=_opt_str(data.get("phone")),
            location=_opt_str(data.get("location")),
            summary=_opt_str(data.get("summary")),
            skills=_str_list(data.get("skills")),
            experience=[Experience.from_dict(e) for e in data.get("experience") or [] if isinstance(e, dict)],
            education=[Education.from_dict(e) for e in data.get("education") or [] if isinstance(e, dict)],
            languages=_str_list(data.get("languages")) or None,
            total_years_experience=_opt_float(
                data.get("total_years_experience", data.get("totalYearsExperience"))
            ),
            experience_by_technology=by_tech or None,
        )


def make_job_id(url: str, title: str = "", company: str = "") -> str:
    raw = url or f"{title}{company}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif value:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            try:
                dt = parsedate_to_datetime(str(value))
            except (TypeError, ValueError):
                dt = datetime.now(timezone.utc)
    else:
        dt = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class JobPosting:
    title: str
    company: str
    description: str
    url: str
    source: str
    posted_at: datetime
    location: str | None = None
    salary: str | None = None
    requirements: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    employment_type: str | None = None
    experience_level: str | None = None
    company_url: str | None = None
    id: str = ""

    def __post_init__(self) -> None:
        self.posted_at = _parse_datetime(self.posted_at)
        if not self.id:
            self.id = make_job_id(self.url, self.title, self.company)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "location": self.location,
            "salary": self.salary,
            "requirements": list(self.requirements),
            "benefits": list(self.benefits),
            "url": self.url,
            "source": self.source,
            "posted_at": self.posted_at.isoformat(),
            "skills": list(self.skills),
            "employment_type": self.employment_type,
            "experience_level": self.experience_level,
            "company_url": self.company_url,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobPosting":
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or "").strip(),
            company=str(data.get("company") or "").strip(),
            description=str(data.get("description") or ""),
            location=_opt_str(data.get("location")),
            salary=_opt_str(data.get("salary")),
            requirements=_str_list(data.get("requirements")),
            benefits=_str_list(data.get("benefits")),
            url=str(data.get("url") or "").strip(),
            source=str(data.get("source") or "unknown"),
            posted_at=data.get("posted_at"),
            skills=_str_list(data.get("skills")),
            employment_type=_opt_str(data.get("employment_type")),
            experience_level=_opt_str(data.get("experience_level")),
            company_url=_opt_str(data.get("company_url")),
        )


@dataclass
class MatchResult:
    job: JobPosting
    score: float
    rank: int

    def to_dict(self) -> dict[str, Any]:
        return {"job": self.job.to_dict(), "score": self.score, "rank": self.rank}


@dataclass
class KeywordSet:
    keywords: list[str]
    roles: list[str]
    location: str

    def to_dict(self) -> dict[str, Any]:
        return {"keywords": list(self.keywords), "roles": list(self.roles), "location": self.location}


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class ApplicationDraft:
    job: JobPosting
    cover_letter: str
    subject: str
    recipient: str | None
    status: ApplicationStatus = ApplicationStatus.PENDING
    used_fallback: bool = False
    language: str = "pt"
    error: str | None = None

    def _transition(self, status: ApplicationStatus) -> None:
        if self.status is not ApplicationStatus.PENDING:
            raise ValueError(f"Application already {self.status.value}")
        self.status = status

    def mark_sent(self) -> None:
        self._transition(ApplicationStatus.SENT)

    def mark_failed(self, reason: str) -> None:
        self._transition(ApplicationStatus.FAILED)
        self.error = reason

    def to_dict(self) -> dict[str, Any]:
        data = _drop_none({
            "job": self.job.to_dict(),
            "cover_letter": self.cover_letter,
            "subject": self.subject,
            "status": self.status.value,
            "used_fallback": self.used_fallback,
            "language": self.language,
            "error": self.error,
        })
        # Nullable on the wire: clients check it before sending.
        data["recipient"] = self.recipient
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationDraft":
        """Rebuild a draft submitted back by a client; always starts pending."""
        return cls(
            job=JobPosting.from_dict(data.get("job") or {}),
            cover_letter=str(data.get("cover_letter") or ""),
            subject=str(data.get("subject") or ""),
            recipient=_opt_str(data.get("recipient")),
            used_fallback=bool(data.get("used_fallback", False)),
            language=str(data.get("language") or "pt"),
        )
