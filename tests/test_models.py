"""Tests for the data models and their dict round-trips."""

from datetime import datetime, timezone

import pytest

from autoapply.models import (
    ApplicationDraft,
    ApplicationStatus,
    CandidateProfile,
    JobPosting,
    make_job_id,
)


class TestCandidateProfile:
    def test_from_dict_accepts_camel_case_totals(self):
        profile = CandidateProfile.from_dict({
            "name": " Ana Souza ",
            "email": "ana@mail.com",
            "skills": ["Python", "", None, "SQL"],
            "experience": [{"title": "Dev", "company": "X", "yearsInRole": "2"}],
            "totalYearsExperience": 2,
            "experienceByTechnology": {"Python": "2", "": 1, "SQL": "n/a"},
        })

        assert profile.name == "Ana Souza"
        assert profile.skills == ["Python", "SQL"]
        assert profile.experience[0].years_in_role == 2.0
        assert profile.total_years_experience == 2.0
        assert profile.experience_by_technology == {"Python": 2.0}

    def test_to_dict_omits_unset_optionals(self):
        data = CandidateProfile(name="Ana", email="ana@mail.com").to_dict()
        assert "phone" not in data
        assert data["skills"] == []


class TestJobPosting:
    def test_id_is_derived_from_url(self):
        job = JobPosting(title="Dev", company="X", description="", url="https://x.io/1",
                         source="Test", posted_at=None)
        assert job.id == make_job_id("https://x.io/1")
        assert len(job.id) == 12

    def test_posted_at_parses_iso_and_rfc2822(self):
        iso = JobPosting.from_dict({"title": "a", "posted_at": "2024-03-01T10:00:00Z"})
        rss = JobPosting.from_dict({"title": "b", "posted_at": "Fri, 01 Mar 2024 10:00:00 +0000"})
        expected = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert iso.posted_at == expected
        assert rss.posted_at == expected

    def test_naive_datetime_is_taken_as_utc(self):
        job = JobPosting.from_dict({"title": "a", "posted_at": "2024-03-01T10:00:00"})
        assert job.posted_at.tzinfo is not None

    def test_round_trip_keeps_id(self):
        job = JobPosting.from_dict({"id": "abc123", "title": "Dev", "company": "X", "url": "u"})
        assert JobPosting.from_dict(job.to_dict()).id == "abc123"


class TestApplicationDraft:
    def _draft(self):
        job = JobPosting.from_dict({"title": "Dev", "company": "X", "url": "https://x.io/1"})
        return ApplicationDraft(job=job, cover_letter="Hi", subject="S", recipient="hr@x.io")

    def test_pending_to_sent(self):
        draft = self._draft()
        draft.mark_sent()
        assert draft.status is ApplicationStatus.SENT

    def test_pending_to_failed_keeps_reason(self):
        draft = self._draft()
        draft.mark_failed("SMTP down")
        assert draft.status is ApplicationStatus.FAILED
        assert draft.error == "SMTP down"

    def test_terminal_states_are_final(self):
        draft = self._draft()
        draft.mark_sent()
        with pytest.raises(ValueError):
            draft.mark_failed("late")
        with pytest.raises(ValueError):
            draft.mark_sent()

    def test_from_dict_always_pending(self):
        data = self._draft().to_dict()
        data["status"] = "sent"
        assert ApplicationDraft.from_dict(data).status is ApplicationStatus.PENDING

    def test_to_dict_keeps_null_recipient(self):
        draft = self._draft()
        draft.recipient = None
        data = draft.to_dict()
        assert "recipient" in data
        assert data["recipient"] is None
        assert "error" not in data
