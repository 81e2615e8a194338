"""Assemble application drafts: cover letter, subject and recipient per job."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from autoapply.cover_letter import build_subject, generate_cover_letter
from autoapply.errors import BatchLimitExceeded, NoRecipientFound
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.models import ApplicationDraft, CandidateProfile, JobPosting
from autoapply.recipient import resolve_recipient

log = get_logger(__name__)


@dataclass
class ComposeOutcome:
    """One entry of a batch: a draft, or the reason the job was skipped."""

    job: JobPosting
    draft: ApplicationDraft | None = None
    skipped: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.draft is not None:
            return {"job_id": self.job.id, "draft": self.draft.to_dict()}
        return {"job_id": self.job.id, "skipped": self.skipped}


def _find_recipient(job: JobPosting, llm: LLMClient | None) -> str | None:
    try:
        return resolve_recipient(job, llm)
    except NoRecipientFound as exc:
        log.info("%s — manual application needed", exc)
        return None


def _draft(
    profile: CandidateProfile, job: JobPosting, llm: LLMClient | None, recipient: str | None,
) -> ApplicationDraft:
    letter = generate_cover_letter(profile, job, llm)
    return ApplicationDraft(
        job=job,
        cover_letter=letter.text,
        subject=build_subject(profile, job, letter.language),
        recipient=recipient,
        used_fallback=letter.used_fallback,
        language=letter.language,
    )


def compose(profile: CandidateProfile, job: JobPosting, llm: LLMClient | None = None) -> ApplicationDraft:
    """Draft an application for ``job``.

    The recipient is ``None`` when no address could be resolved; such a draft
    can be previewed but the dispatcher will refuse to send it.
    """
    return _draft(profile, job, llm, _find_recipient(job, llm))


def compose_batch(
    profile: CandidateProfile,
    jobs: list[JobPosting],
    llm: LLMClient | None = None,
    *,
    cap: int = 5,
    require_recipient: bool = True,
) -> list[ComposeOutcome]:
    """Draft applications for up to ``cap`` jobs, in order.

    Jobs without a recipient become skip records when ``require_recipient``
    is set (the sending path); previews keep them as drafts.
    """
    if len(jobs) > cap:
        raise BatchLimitExceeded(f"At most {cap} jobs per request (got {len(jobs)})")

    outcomes: list[ComposeOutcome] = []
    for job in jobs:
        recipient = _find_recipient(job, llm)
        if recipient is None and require_recipient:
            outcomes.append(ComposeOutcome(job=job, skipped=NoRecipientFound.code))
            continue
        outcomes.append(ComposeOutcome(job=job, draft=_draft(profile, job, llm, recipient)))

    log.info(
        "Composed %d draft(s), skipped %d",
        sum(1 for o in outcomes if o.draft), sum(1 for o in outcomes if o.skipped),
    )
    return outcomes
