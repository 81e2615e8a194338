"""Work out where to send an application for a posting."""
from __future__ import annotations

import re
from urllib.parse import urlparse

from autoapply.errors import CollaboratorUnavailable, NoRecipientFound
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import JobPosting

log = get_logger(__name__)

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
COMMON_PREFIXES = ("jobs", "careers", "hr", "recruiting", "talent")

# Addresses in descriptions that are never a recruiter.
_IGNORED_LOCAL_PARTS = ("noreply", "no-reply", "donotreply", "privacy", "abuse", "support")
_IGNORED_DOMAINS = ("example.com", "example.org")

_PROMPT = """\
Which email address should a job application for this posting be sent to?
Only answer with an address that is written in the text or clearly belongs to the company.
Answer with the email address only, or NONE if you cannot tell.

Company: {company}
Company website: {company_url}
Title: {title}
Description:
{description}
"""


def _usable(address: str) -> bool:
    local, _, domain = address.lower().partition("@")
    if any(local.startswith(p) for p in _IGNORED_LOCAL_PARTS):
        return False
    return domain not in _IGNORED_DOMAINS


def email_from_description(description: str) -> str | None:
    for match in EMAIL_RE.finditer(description or ""):
        address = match.group(0).rstrip(".")
        if _usable(address):
            return address
    return None


def infer_with_llm(job: JobPosting, llm: LLMClient | None) -> str | None:
    if llm is None or not llm.available:
        return None
    try:
        reply = llm.ask(
            "You find recruiter contact addresses in job postings.",
            _PROMPT.format(
                company=job.company,
                company_url=job.company_url or "unknown",
                title=job.title,
                description=job.description[:2000],
            ),
            temperature=0.0,
            max_tokens=40,
        )
    except CollaboratorUnavailable as exc:
        log.warning("Recipient inference failed for %s: %s", job.company, exc)
        return None
    match = EMAIL_RE.search(reply)
    if match and _usable(match.group(0)):
        return match.group(0)
    return None


def company_domain(url: str | None) -> str | None:
    if not url:
        return None
    netloc = urlparse(url if "//" in url else f"//{url}").netloc.lower()
    netloc = netloc.split("@")[-1].split(":")[0]
    if netloc.startswith("www."):
        netloc = netloc[4:]
    return netloc if "." in netloc else None


def candidate_addresses(company_url: str | None) -> list[str]:
    """Common recruiting mailboxes on the company's domain, most likely first."""
    domain = company_domain(company_url)
    if not domain:
        return []
    return [f"{prefix}@{domain}" for prefix in COMMON_PREFIXES]


def resolve_recipient(job: JobPosting, llm: LLMClient | None = None) -> str:
    """Recruiter address for ``job``, or raise :class:`NoRecipientFound`.

    Tries, in order: an address in the description, the LLM's guess, then
    ``jobs@`` on the company's own domain.
    """
    address = email_from_description(job.description)
    if address:
        log.debug("Recipient for %s found in description: %s", job.company, address)
        return address

    address = infer_with_llm(job, llm)
    if address:
        log.debug("Recipient for %s inferred by LLM: %s", job.company, address)
        return address

    guesses = candidate_addresses(job.company_url)
    if guesses:
        log.debug("Recipient for %s synthesized from domain: %s", job.company, guesses[0])
        return guesses[0]

    raise NoRecipientFound(f"No recruiter address found for {job.title} at {job.company}")
