"""Tests for job-search keyword derivation."""

from autoapply.errors import CollaboratorUnavailable
from autoapply.keywords import MAX_FALLBACK_KEYWORDS, derive_keywords, fallback_keywords
from autoapply.models import CandidateProfile, Experience


class TestFallbackKeywords:
    def test_combines_skills_and_experience(self, profile):
        profile.experience.append(Experience("Dev", "Y", technologies=["Docker", "react"]))
        keywords = fallback_keywords(profile)

        assert keywords.keywords == ["JavaScript", "React", "Node.js", "PostgreSQL", "Docker"]
        assert keywords.roles == []
        assert keywords.location == "São Paulo, SP"

    def test_capped_and_default_location(self):
        profile = CandidateProfile(name="Ana", email="a@b.com", skills=[f"s{i}" for i in range(25)])
        keywords = fallback_keywords(profile)
        assert len(keywords.keywords) == MAX_FALLBACK_KEYWORDS
        assert keywords.location == "Brasil"


class TestDeriveKeywords:
    def test_no_llm(self, profile):
        assert derive_keywords(profile, None) == fallback_keywords(profile)

    def test_llm_answer(self, profile, fake_llm):
        llm = fake_llm(['{"keywords": ["React", "react", "GraphQL"], '
                        '"roles": ["Frontend Developer"], "location": "Remote"}'])
        keywords = derive_keywords(profile, llm)

        assert keywords.keywords == ["React", "GraphQL"]
        assert keywords.roles == ["Frontend Developer"]
        assert keywords.location == "Remote"
        assert "Built React dashboards" in llm.prompts[0]

    def test_llm_failure_falls_back(self, profile, fake_llm):
        keywords = derive_keywords(profile, fake_llm([CollaboratorUnavailable("down")]))
        assert keywords == fallback_keywords(profile)

    def test_malformed_answer_falls_back(self, profile, fake_llm):
        keywords = derive_keywords(profile, fake_llm(["keywords: React"]))
        assert keywords.keywords == fallback_keywords(profile).keywords

    def test_empty_keyword_list_uses_profile(self, profile, fake_llm):
        keywords = derive_keywords(profile, fake_llm(['{"keywords": [], "roles": "Dev", "location": ""}']))
        assert keywords.keywords == fallback_keywords(profile).keywords
        assert keywords.roles == ["Dev"]
        assert keywords.location == "São Paulo, SP"
