"""
Shared fixtures for the test suite.

No test talks to the network: the LLM is replaced by :class:`FakeLLM`,
HTTP calls are patched per test, and credentials are cleared from the
environment so a developer's .env cannot leak into a run.
"""

import os
from datetime import datetime, timezone

import pytest

# Before any autoapply import: keep test runs from writing log files.
os.environ["AUTOAPPLY_LOG_FILE"] = "false"

from autoapply.config import Settings
from autoapply.errors import CollaboratorUnavailable
from autoapply.models import CandidateProfile, Education, Experience, JobPosting

_CREDENTIAL_VARS = (
    "GROQ_API_KEY", "LLM_API_KEY", "GROQ_LLM_MODEL", "LLM_MODEL", "LLM_BASE_URL",
    "ADZUNA_APP_ID", "ADZUNA_APP_KEY", "RESEND_API_KEY", "RESEND_SENDER_EMAIL",
    "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "FROM_EMAIL",
    "APPLICATIONS_CSV", "LEGACY_DEDUPE", "BATCH_CAP", "SEND_DELAY",
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Drop real credentials and tunables picked up from the shell or .env."""
    for name in _CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeLLM:
    """Stand-in for :class:`autoapply.llm.LLMClient`.

    ``replies`` are handed out in order, one per ``ask``/``chat`` call; an
    exception instance in the list is raised instead of returned. When the
    script runs out, further calls raise :class:`CollaboratorUnavailable`.
    """

    model = "fake-model"

    def __init__(self, replies=None, available=True):
        self.replies = list(replies or [])
        self.available = available
        self.calls = []

    def chat(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        if not self.replies:
            raise CollaboratorUnavailable("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def ask(self, system, user, **kwargs):
        return self.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            **kwargs,
        )

    @property
    def prompts(self):
        return [c["messages"][-1]["content"] for c in self.calls]


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def settings(tmp_path):
    return Settings(
        send_delay=0.0,
        source_retry_delay=0.0,
        tracker_path=str(tmp_path / "applications.csv"),
    )


@pytest.fixture
def profile():
    return CandidateProfile(
        name="João Silva",
        email="joao@x.com",
        phone="+55 11 91234-5678",
        location="São Paulo, SP",
        summary="Full-stack developer focused on web products.",
        skills=["JavaScript", "React", "Node.js", "PostgreSQL"],
        experience=[
            Experience(
                title="Developer",
                company="Acme",
                duration="2020-2023",
                description="Built React dashboards and Node.js APIs.",
                technologies=["React", "Node.js"],
                years_in_role=3.0,
            ),
        ],
        education=[Education(degree="BSc Computer Science", institution="USP", year="2019")],
        languages=["Português", "English"],
        total_years_experience=3.0,
        experience_by_technology={"React": 3.0, "Node.js": 3.0},
    )


def make_job(title="Frontend Developer", company="Globex", url=None, **kwargs):
    slug = f"{title}-{company}".lower().replace(" ", "-")
    kwargs.setdefault("description", f"{title} at {company}. We use React and TypeScript.")
    kwargs.setdefault("source", "Test")
    kwargs.setdefault("posted_at", datetime(2024, 5, 1, tzinfo=timezone.utc))
    return JobPosting(
        title=title,
        company=company,
        url=url if url is not None else f"https://jobs.example.net/{slug}",
        **kwargs,
    )


@pytest.fixture
def job_factory():
    return make_job


@pytest.fixture
def job():
    return make_job(company_url="https://www.globex.com")
