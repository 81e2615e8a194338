"""
Résumé-to-application pipeline.

Stages: extract text → structured profile → keywords → aggregate jobs →
rank → compose drafts → dispatch. Each stage is a method so the HTTP layer
can run them one request at a time; every collaborator (LLM, job sources,
mail) is injected, which is how the tests swap in fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from autoapply.aggregator import aggregate
from autoapply.composer import ComposeOutcome, compose_batch
from autoapply.config import Settings, load_settings
from autoapply.dispatcher import Attachment, Dispatcher, DispatchResult, validate_mail_config
from autoapply.errors import CollaboratorUnavailable
from autoapply.keywords import derive_keywords
from autoapply.llm import LLMClient
from autoapply.log import get_logger
from autoapply.matcher import rank_jobs
from autoapply.models import ApplicationDraft, CandidateProfile, JobPosting, KeywordSet, MatchResult
from autoapply.resume_parser import ExtractionPolicy
from autoapply.sources import JobSource, get_sources
from autoapply.text_extractor import extract_text, validate_upload
from autoapply.tracker import ApplicationTracker

log = get_logger(__name__)


@dataclass
class ExtractionResult:
    profile: CandidateProfile
    keywords: KeywordSet
    strategy: str
    characters: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "keywords": self.keywords.to_dict(),
            "strategy": self.strategy,
            "characters": self.characters,
        }


class Pipeline:
    def __init__(
        self,
        settings: Settings,
        llm: LLMClient | None = None,
        sources: list[JobSource] | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self.settings = settings
        self.llm = llm
        self.sources = sources if sources is not None else []
        self.dispatcher = dispatcher or Dispatcher(settings)

    def extract_resume(
        self,
        payload: bytes,
        media_type: str | None = None,
        filename: str | None = None,
    ) -> ExtractionResult:
        validate_upload(len(payload), media_type, filename, self.settings.max_upload_bytes)
        text = extract_text(payload, media_type, filename)
        profile, strategy = ExtractionPolicy.from_settings(self.settings, self.llm).extract(text)
        keywords = derive_keywords(profile, self.llm)
        return ExtractionResult(profile, keywords, strategy, len(text))

    def aggregate_jobs(self, keywords: list[str], location: str | None = None) -> list[JobPosting]:
        s = self.settings
        return aggregate(
            self.sources,
            keywords,
            location,
            per_source_cap=s.per_source_cap,
            total_cap=s.total_cap,
            timeout=s.aggregate_timeout,
            legacy_dedupe=s.legacy_dedupe,
        )

    def match(self, profile: CandidateProfile, jobs: list[JobPosting], limit: int | None = None) -> list[MatchResult]:
        if self.llm is None:
            raise CollaboratorUnavailable("LLM API key not configured")
        return rank_jobs(profile, jobs, self.llm, limit or self.settings.match_limit)

    def compose(
        self,
        profile: CandidateProfile,
        jobs: list[JobPosting],
        *,
        preview: bool = False,
        cap: int | None = None,
    ) -> list[ComposeOutcome]:
        return compose_batch(
            profile,
            jobs,
            self.llm,
            cap=self.settings.batch_cap if cap is None else cap,
            require_recipient=not preview,
        )

    def send(
        self,
        profile: CandidateProfile,
        drafts: list[ApplicationDraft],
        resume: Attachment | None = None,
        *,
        cap: int | None = None,
    ) -> list[DispatchResult]:
        return self.dispatcher.dispatch_batch(drafts, profile, resume, cap=cap)

    def mail_status(self) -> dict[str, Any]:
        return validate_mail_config(self.settings)


def build_pipeline(settings: Settings | None = None) -> Pipeline:
    """Wire the production collaborators from settings."""
    settings = settings or load_settings()
    llm = LLMClient.from_settings(settings)
    if not llm.available:
        log.warning("No LLM API key — heuristic extraction and template letters only")
    return Pipeline(
        settings,
        llm=llm,
        sources=get_sources(settings),
        dispatcher=Dispatcher(settings, ApplicationTracker(settings.tracker_path)),
    )
