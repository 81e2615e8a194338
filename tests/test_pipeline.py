"""Tests for the pipeline wiring between stages."""

import pytest

from autoapply.config import Settings
from autoapply.errors import BatchLimitExceeded, CollaboratorUnavailable, FileTooLarge
from autoapply.pipeline import Pipeline, build_pipeline
from tests.conftest import make_job
from tests.test_aggregator import StubSource
from tests.test_text_extractor import DOCX_TYPE, make_docx

RESUME_DOCX = make_docx(
    "João Silva",
    "joao@x.com",
    "Skills: JavaScript, React.",
    "Experience: Developer at Acme - 2020-2023",
)


class TestExtractResume:
    def test_heuristic_without_llm(self, settings):
        result = Pipeline(settings).extract_resume(RESUME_DOCX, DOCX_TYPE, "cv.docx")

        assert result.strategy == "heuristic"
        assert result.profile.name == "João Silva"
        assert result.keywords.keywords == ["JavaScript", "React"]
        assert result.keywords.location == "Brasil"
        assert result.characters > 0
        assert result.to_dict()["profile"]["email"] == "joao@x.com"

    def test_llm_strategy(self, settings, fake_llm):
        llm = fake_llm([
            '{"name": "João Silva", "email": "joao@x.com", "skills": ["React"], "experience": []}',
            '{"keywords": ["React"], "roles": ["Frontend Developer"], "location": "Recife"}',
        ])
        result = Pipeline(settings, llm=llm).extract_resume(RESUME_DOCX, DOCX_TYPE, "cv.docx")
        assert result.strategy == "llm"
        assert result.keywords.roles == ["Frontend Developer"]

    def test_size_limit(self, settings):
        settings.max_upload_bytes = 10
        with pytest.raises(FileTooLarge):
            Pipeline(settings).extract_resume(RESUME_DOCX, DOCX_TYPE, "cv.docx")


class TestStages:
    def test_aggregate_uses_settings_caps(self, settings):
        settings.total_cap = 2
        source = StubSource("S", [make_job(f"Job {i}", "Acme") for i in range(5)])
        jobs = Pipeline(settings, sources=[source]).aggregate_jobs(["React"], "Remote")
        assert len(jobs) == 2
        assert source.seen == (["React"], "Remote")

    def test_match_requires_llm(self, settings, profile):
        with pytest.raises(CollaboratorUnavailable):
            Pipeline(settings).match(profile, [make_job()])

    def test_match_default_limit(self, settings, profile, fake_llm):
        settings.match_limit = 1
        jobs = [make_job("A", "X"), make_job("B", "Y")]
        results = Pipeline(settings, llm=fake_llm(["[]"])).match(profile, jobs)
        assert len(results) == 1

    def test_compose_respects_cap(self, settings, profile):
        jobs = [make_job(f"Job {i}", "Acme") for i in range(3)]
        with pytest.raises(BatchLimitExceeded):
            Pipeline(settings).compose(profile, jobs, preview=True, cap=2)

    def test_mail_status(self, settings):
        assert Pipeline(settings).mail_status()["valid"] is False


def test_build_pipeline_without_keys():
    pipeline = build_pipeline(Settings())
    assert pipeline.llm is not None
    assert pipeline.llm.available is False
    assert [s.name for s in pipeline.sources] == ["Remotive", "WeWorkRemotely", "Jobicy"]
    assert pipeline.dispatcher.tracker is not None
