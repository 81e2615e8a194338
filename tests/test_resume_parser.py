"""Tests for structured résumé extraction and the LLM/heuristic policy."""

import json

from autoapply.config import Settings
from autoapply.errors import CollaboratorUnavailable
from autoapply.models import CandidateProfile, Education, Experience
from autoapply.resume_parser import (
    EMAIL_PLACEHOLDER,
    MAX_EDUCATION,
    MAX_EXPERIENCE,
    MAX_SKILLS,
    NAME_PLACEHOLDER,
    ExtractionPolicy,
    HeuristicProfileStrategy,
    LLMProfileStrategy,
    finalize_profile,
    merge_profiles,
    parse_resume,
    split_chunks,
)

RESUME = (
    "João Silva, joao@x.com, Skills: JavaScript, React. "
    "Experience: Developer at Acme - 2020-2023"
)

LLM_PROFILE = {
    "name": "Ana Souza",
    "email": "ana@mail.com",
    "location": "Recife, PE",
    "skills": ["Python", "SQL", "python"],
    "experience": [
        {"title": "Dev", "company": "X", "duration": "2019-2021",
         "technologies": ["Python"], "yearsInRole": 2},
        {"title": "Lead", "company": "Y", "duration": "2021-2024",
         "technologies": ["Python", "SQL"]},
    ],
    "totalYearsExperience": 40,
    "experienceByTechnology": {"COBOL": 30},
}


class TestSplitChunks:
    def test_sequential_slices_limited(self):
        assert split_chunks("abcdefgh", 3, 2) == ["abc", "def"]

    def test_short_text_single_chunk(self):
        assert split_chunks("abc", 10, 2) == ["abc"]


class TestMergeProfiles:
    def test_first_non_empty_and_unions(self):
        a = CandidateProfile(name="", email="a@x.com", summary="First.", skills=["Go"],
                             experience=[Experience("Dev", "X")], total_years_experience=2)
        b = CandidateProfile(name="Ana", email="b@x.com", summary="Second.", skills=["go", "SQL"],
                             experience=[Experience("dev", "x"), Experience("Lead", "Y")],
                             total_years_experience=3)
        merged = merge_profiles([a, b])

        assert merged.name == "Ana"
        assert merged.email == "a@x.com"
        assert merged.summary == "First. Second."
        assert merged.skills == ["Go", "SQL"]
        assert [e.title for e in merged.experience] == ["Dev", "Lead"]
        assert merged.total_years_experience == 5


class TestFinalizeProfile:
    def test_placeholders_when_missing(self):
        profile = finalize_profile(CandidateProfile(name="  ", email=""))
        assert profile.name == NAME_PLACEHOLDER
        assert profile.email == EMAIL_PLACEHOLDER
        assert profile.total_years_experience is None

    def test_caps_lists(self):
        profile = finalize_profile(CandidateProfile(
            name="Ana",
            email="ana@mail.com",
            skills=[f"skill{i}" for i in range(30)],
            experience=[Experience(f"Role {i}", "Co", duration="2020-2021") for i in range(8)],
            education=[Education(f"Course {i}", "Uni") for i in range(6)],
        ))
        assert len(profile.skills) == MAX_SKILLS
        assert len(profile.experience) == MAX_EXPERIENCE
        assert len(profile.education) == MAX_EDUCATION

    def test_totals_recomputed_from_experience(self):
        profile = finalize_profile(CandidateProfile.from_dict(LLM_PROFILE))

        assert [e.years_in_role for e in profile.experience] == [2.0, 3.0]
        assert profile.total_years_experience == 5.0
        assert profile.experience_by_technology == {"Python": 5.0, "SQL": 3.0}

    def test_drops_duplicate_and_empty_experience(self):
        profile = finalize_profile(CandidateProfile(
            name="Ana", email="ana@mail.com",
            experience=[Experience("Dev", "X", years_in_role=1), Experience("DEV ", "x"),
                        Experience("", "")],
        ))
        assert len(profile.experience) == 1


class TestLLMProfileStrategy:
    def test_short_resume_single_request(self, fake_llm):
        llm = fake_llm([json.dumps(LLM_PROFILE)])
        profile = LLMProfileStrategy(llm).extract("short resume text")

        assert profile.name == "Ana Souza"
        assert len(llm.calls) == 1
        assert "short resume text" in llm.prompts[0]
        assert llm.calls[0]["temperature"] == 0.1

    def test_long_resume_is_chunked_and_merged(self, fake_llm):
        llm = fake_llm([
            '{"name": "Ana Souza", "email": "", "skills": ["Python"], "experience": []}',
            '```json\n{"name": "", "email": "ana@mail.com", "skills": ["SQL"], '
            '"experience": [{"title": "Dev", "company": "X"}]}\n```',
        ])
        strategy = LLMProfileStrategy(llm, chunk_threshold=50, chunk_size=40, max_chunks=2)
        profile = strategy.extract("x" * 200)

        assert len(llm.calls) == 2
        assert "part 1 of 2" in llm.prompts[0]
        assert "part 2 of 2" in llm.prompts[1]
        assert profile.name == "Ana Souza"
        assert profile.email == "ana@mail.com"
        assert profile.skills == ["Python", "SQL"]


class TestExtractionPolicy:
    def test_llm_result_is_finalized(self, fake_llm):
        policy = ExtractionPolicy(LLMProfileStrategy(fake_llm([json.dumps(LLM_PROFILE)])))
        profile, strategy = policy.extract(RESUME)

        assert strategy == "llm"
        assert profile.skills == ["Python", "SQL"]
        assert profile.total_years_experience == 5.0

    def test_empty_contact_fields_filled_from_heuristic(self, fake_llm):
        reply = json.dumps({"name": "João Silva", "email": "", "skills": ["React"]})
        profile, strategy = ExtractionPolicy(LLMProfileStrategy(fake_llm([reply]))).extract(RESUME)

        assert strategy == "llm"
        assert profile.name == "João Silva"
        assert profile.email == "joao@x.com"
        assert profile.skills == ["React"]

    def test_placeholder_only_when_both_strategies_miss(self, fake_llm):
        reply = json.dumps({"name": "", "email": "", "skills": ["React"]})
        llm = fake_llm([reply])
        profile, _ = ExtractionPolicy(LLMProfileStrategy(llm)).extract("React projects, remote team")

        assert profile.name == NAME_PLACEHOLDER
        assert profile.email == EMAIL_PLACEHOLDER

    def test_malformed_reply_falls_back(self, fake_llm):
        policy = ExtractionPolicy(LLMProfileStrategy(fake_llm(["Sorry, I can't help with that."])))
        profile, strategy = policy.extract(RESUME)

        assert strategy == "heuristic"
        assert profile.name == "João Silva"
        assert profile.experience[0].company == "Acme"

    def test_unavailable_llm_falls_back(self, fake_llm):
        llm = fake_llm([CollaboratorUnavailable("timeout")])
        profile, strategy = ExtractionPolicy(LLMProfileStrategy(llm)).extract(RESUME)
        assert strategy == "heuristic"
        assert profile.email == "joao@x.com"

    def test_from_settings_without_llm_uses_heuristic(self, fake_llm):
        policy = ExtractionPolicy.from_settings(Settings(), fake_llm(available=False))
        assert policy.primary is None
        assert isinstance(policy.fallback, HeuristicProfileStrategy)

    def test_from_settings_passes_chunking(self, fake_llm):
        policy = ExtractionPolicy.from_settings(Settings(chunk_threshold=123), fake_llm())
        assert policy.primary.chunk_threshold == 123


def test_parse_resume_without_llm():
    profile = parse_resume(RESUME)
    assert profile.name == "João Silva"
    assert "React" in profile.skills
    assert profile.total_years_experience == 3.0
    assert profile.experience_by_technology is None
