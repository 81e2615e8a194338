"""Common base for job board adapters.

Subclasses implement :meth:`JobSource.search`; callers only ever use
:meth:`JobSource.fetch`, which caps the result and turns every failure into
an empty list so one broken board never takes the others down.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import requests
from bs4 import BeautifulSoup

from autoapply.config import Settings
from autoapply.errors import AdapterUnavailable
from autoapply.log import get_logger
from autoapply.models import JobPosting
from autoapply.retry import fixed, retry
from autoapply.text_extractor import clean_text
from autoapply.vocabulary import find_skills

log = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; autoapply/1.0; +https://github.com/autoapply)"

REQUIREMENT_HEADERS = ("requisitos", "requirements", "qualificações", "qualifications",
                       "precisamos", "we need")
BENEFIT_HEADERS = ("benefícios", "beneficios", "benefits", "ofertamos", "we offer", "perks")

_SECTION_SCAN = 10
_SECTION_MAX = 5


def html_to_text(html: str) -> str:
    """Plain text from an HTML fragment, keeping one block element per line."""
    if not html:
        return ""
    if "<" not in html:
        return clean_text(html)
    soup = BeautifulSoup(html, "html.parser")
    return clean_text(soup.get_text("\n"))


def _section(description: str, headers: tuple[str, ...], stop: tuple[str, ...]) -> list[str]:
    lines = [ln.strip(" \t•*-–") for ln in (description or "").splitlines()]
    for i, line in enumerate(lines):
        if not any(h in line.lower() for h in headers):
            continue
        items: list[str] = []
        for item in lines[i + 1:i + _SECTION_SCAN]:
            if any(s in item.lower() for s in stop):
                break
            if len(item) > 10:
                items.append(item)
        return items[:_SECTION_MAX]
    return []


def extract_requirements(description: str) -> list[str]:
    """Up to five lines following a requirements/qualifications heading."""
    return _section(description, REQUIREMENT_HEADERS, BENEFIT_HEADERS)


def extract_benefits(description: str) -> list[str]:
    """Up to five lines following a benefits/perks heading."""
    return _section(description, BENEFIT_HEADERS, REQUIREMENT_HEADERS)


def build_posting(
    *,
    title: str,
    company: str,
    description: str,
    url: str,
    source: str,
    posted_at: Any = None,
    location: str | None = None,
    salary: str | None = None,
    tags: list[str] | None = None,
    employment_type: str | None = None,
    experience_level: str | None = None,
    company_url: str | None = None,
) -> JobPosting:
    """Normalize one upstream record into a :class:`JobPosting`.

    Skills come from upstream ``tags`` when the board has them, otherwise
    from the technology vocabulary matched against title and description.
    """
    description = description or ""
    skills = [t.strip() for t in tags or [] if t and t.strip()]
    if not skills:
        skills = find_skills(f"{title}\n{description}")
    return JobPosting(
        title=(title or "").strip(),
        company=(company or "").strip(),
        description=description,
        url=(url or "").strip(),
        source=source,
        posted_at=posted_at,
        location=(location or "").strip() or None,
        salary=(salary or "").strip() or None,
        requirements=extract_requirements(description),
        benefits=extract_benefits(description),
        skills=skills,
        employment_type=employment_type or None,
        experience_level=experience_level or None,
        company_url=company_url or None,
    )


class JobSource(ABC):
    name = "base"

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        cap: int = 50,
    ) -> None:
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.cap = cap

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "JobSource":
        return cls(
            timeout=settings.source_timeout,
            max_attempts=settings.source_max_attempts,
            retry_delay=settings.source_retry_delay,
            cap=settings.per_source_cap,
            **kwargs,
        )

    def _get(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        """GET with fixed-delay retry; raises :class:`AdapterUnavailable` once exhausted."""

        @retry(fixed(self.max_attempts, self.retry_delay), retryable=(requests.RequestException,))
        def _attempt() -> requests.Response:
            r = requests.get(url, params=params, timeout=self.timeout,
                             headers={"User-Agent": USER_AGENT})
            r.raise_for_status()
            return r

        try:
            return _attempt()
        except requests.RequestException as exc:
            raise AdapterUnavailable(f"{self.name}: {exc}") from exc

    @abstractmethod
    def search(self, keywords: list[str], location: str | None) -> list[JobPosting]:
        ...

    def fetch(self, keywords: list[str], location: str | None = None) -> list[JobPosting]:
        """Postings for ``keywords``, at most ``cap`` of them; ``[]`` on any failure."""
        try:
            jobs = self.search(keywords, location)
        except AdapterUnavailable as exc:
            log.warning("%s unavailable: %s", self.name, exc)
            return []
        except Exception as exc:
            log.warning("%s failed while parsing results: %s", self.name, exc, exc_info=True)
            return []
        jobs = [j for j in jobs if j.title and j.company]
        log.info("%s returned %d job(s)", self.name, min(len(jobs), self.cap))
        return jobs[: self.cap]
