"""Tests for LLM-based job ranking."""

import json

import pytest

from autoapply.errors import CollaboratorUnavailable, MalformedCollaboratorResponse
from autoapply.matcher import MAX_LIMIT, parse_scores, rank_jobs
from tests.conftest import make_job


@pytest.fixture
def jobs():
    return [make_job(f"Job {i}", f"Co {i}") for i in range(4)]


class TestParseScores:
    def test_clamps_and_ignores_unknown(self):
        items = [
            {"job_id": "a", "score": 140},
            {"jobId": "b", "score": -3},
            {"id": "c", "score": "77.5"},
            {"job_id": "zzz", "score": 99},
            {"job_id": "a", "score": 10},
            "junk",
            {"job_id": "d", "score": "n/a"},
        ]
        assert parse_scores(items, {"a", "b", "c", "d"}) == {"a": 100.0, "b": 0.0, "c": 77.5, "d": 0.0}


class TestRankJobs:
    def test_empty_jobs_skip_llm(self, profile, fake_llm):
        llm = fake_llm()
        assert rank_jobs(profile, [], llm) == []
        assert llm.calls == []

    def test_orders_by_score_and_ranks_from_one(self, profile, jobs, fake_llm):
        reply = json.dumps([
            {"job_id": jobs[0].id, "score": 40},
            {"job_id": jobs[1].id, "score": 90},
            {"job_id": jobs[2].id, "score": 65},
            {"job_id": jobs[3].id, "score": 90},
        ])
        results = rank_jobs(profile, jobs, fake_llm([reply]))

        assert [r.job.title for r in results] == ["Job 1", "Job 3", "Job 2", "Job 0"]
        assert [r.rank for r in results] == [1, 2, 3, 4]
        assert results[0].score == 90.0

    def test_missing_jobs_score_zero_and_limit(self, profile, jobs, fake_llm):
        reply = '```json\n[{"job_id": "%s", "score": 55}]\n```' % jobs[2].id
        results = rank_jobs(profile, jobs, fake_llm([reply]), limit=2)

        assert [(r.job.title, r.score) for r in results] == [("Job 2", 55.0), ("Job 0", 0.0)]

    def test_prompt_carries_profile_and_job_ids(self, profile, jobs, fake_llm):
        llm = fake_llm(["[]"])
        rank_jobs(profile, jobs, llm)
        payload = json.loads(llm.prompts[0])
        assert payload["resume"]["name"] == "João Silva"
        assert [j["job_id"] for j in payload["jobs"]] == [j.id for j in jobs]

    def test_malformed_reply_propagates(self, profile, jobs, fake_llm):
        with pytest.raises(MalformedCollaboratorResponse):
            rank_jobs(profile, jobs, fake_llm(["I think job 2 is best."]))

    def test_unavailable_llm_propagates(self, profile, jobs, fake_llm):
        with pytest.raises(CollaboratorUnavailable):
            rank_jobs(profile, jobs, fake_llm([CollaboratorUnavailable("429")]))

    def test_limit_never_exceeds_twenty(self, profile, fake_llm):
        many = [make_job(f"Role {i}", f"Firm {i}") for i in range(30)]
        reply = json.dumps([{"job_id": j.id, "score": 50} for j in many])
        results = rank_jobs(profile, many, fake_llm([reply]), limit=30)

        assert len(results) == MAX_LIMIT == 20
        assert results[-1].rank == 20
