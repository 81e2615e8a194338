"""Tests for cover letter generation, validation and fallback templates."""

import pytest

from autoapply.cover_letter import (
    build_subject,
    detect_language,
    fallback_letter,
    generate_cover_letter,
    validate_letter,
)
from autoapply.errors import CollaboratorUnavailable, WeakGeneration
from autoapply.models import CandidateProfile

GOOD_LETTER = (
    "Dear Hiring Manager,\n\n"
    "I am excited to apply for the Frontend Developer role at Globex. Over 3 years I have "
    "built React dashboards and Node.js APIs at Acme.\n\n"
    "Best regards,\nJoão Silva"
)


class TestDetectLanguage:
    @pytest.mark.parametrize("reply, expected", [
        ("en", "en"),
        ("English", "en"),
        ("Português.", "pt"),
        ("ES", "es"),
        ("fr", "pt"),
    ])
    def test_reply_mapping(self, job, fake_llm, reply, expected):
        llm = fake_llm([reply])
        assert detect_language(job, llm) == expected
        assert llm.calls[0]["max_tokens"] == 3

    def test_defaults_without_llm(self, job):
        assert detect_language(job, None) == "pt"

    def test_defaults_when_llm_fails(self, job, fake_llm):
        assert detect_language(job, fake_llm([CollaboratorUnavailable("down")])) == "pt"


class TestSubject:
    def test_localized(self, profile, job):
        assert build_subject(profile, job, "en") == "Application for Frontend Developer - João Silva"
        assert build_subject(profile, job, "pt") == "Candidatura para Frontend Developer - João Silva"
        assert build_subject(profile, job, "es") == "Solicitud para Frontend Developer - João Silva"

    def test_unknown_language_uses_default(self, profile, job):
        assert build_subject(profile, job, "de").startswith("Candidatura para")


class TestValidateLetter:
    def test_accepts_good_letter(self, profile, job):
        assert validate_letter(f"  {GOOD_LETTER}  ", profile, job) == GOOD_LETTER

    def test_too_short(self, profile, job):
        with pytest.raises(WeakGeneration):
            validate_letter("João Silva, Globex.", profile, job)

    def test_missing_name(self, profile, job):
        with pytest.raises(WeakGeneration):
            validate_letter(GOOD_LETTER.replace("João Silva", "[Your Name]"), profile, job)

    def test_needs_an_anchor(self, profile, job_factory):
        other = job_factory("Chef", "Bistro")
        letter = "Hello. " * 20 + "João Silva"
        with pytest.raises(WeakGeneration):
            validate_letter(letter, profile, other)
        assert validate_letter(letter + " with 5 years of experience", profile, other)


class TestFallbackLetter:
    def test_portuguese_template(self, profile, job):
        letter = fallback_letter(profile, job, "pt")
        assert letter.startswith("Prezado(a) recrutador(a),")
        assert "Frontend Developer na Globex" in letter
        assert "Developer na Acme, somando 3 anos" in letter
        assert "JavaScript, React, Node.js, PostgreSQL" in letter
        assert letter.endswith("João Silva")

    def test_english_template_passes_validation(self, profile, job):
        letter = fallback_letter(profile, job, "en")
        assert letter.startswith("Dear Hiring Manager,")
        assert validate_letter(letter, profile, job) == letter

    def test_without_experience_or_skills(self, job):
        letter = fallback_letter(CandidateProfile(name="Ana", email="a@b.com"), job, "es")
        assert "mi experiencia profesional" in letter
        assert "Mi experiencia más reciente" not in letter


class TestGenerateCoverLetter:
    def test_without_llm_uses_template(self, profile, job):
        letter = generate_cover_letter(profile, job, None)
        assert letter.used_fallback is True
        assert letter.language == "pt"

    def test_generated_letter(self, profile, job, fake_llm):
        llm = fake_llm(["en", GOOD_LETTER])
        letter = generate_cover_letter(profile, job, llm)

        assert letter.used_fallback is False
        assert letter.language == "en"
        assert letter.text == GOOD_LETTER
        prompt = llm.prompts[1]
        assert "English" in prompt
        assert "Frontend Developer" in prompt
        assert "João Silva" in prompt

    def test_weak_letter_replaced(self, profile, job, fake_llm):
        letter = generate_cover_letter(profile, job, fake_llm(["pt", "Olá!"]))
        assert letter.used_fallback is True
        assert letter.text.startswith("Prezado(a)")

    def test_llm_failure_replaced(self, profile, job, fake_llm):
        llm = fake_llm([CollaboratorUnavailable("timeout")])
        letter = generate_cover_letter(profile, job, llm, language="es")
        assert letter.used_fallback is True
        assert letter.language == "es"
        assert len(llm.calls) == 1
