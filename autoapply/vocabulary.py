"""Fixed technology vocabulary and the matcher shared by résumé and job parsing."""
from __future__ import annotations

import re
from functools import lru_cache

# Canonical spelling -> extra spellings seen in the wild.
TECH_SKILLS: dict[str, tuple[str, ...]] = {
    "JavaScript": (),
    "TypeScript": (),
    "React": ("react.js", "reactjs"),
    "Node.js": ("nodejs", "node"),
    "Python": (),
    "Java": (),
    "C++": (),
    "C#": (),
    "PHP": (),
    "Ruby": (),
    "Go": ("golang",),
    "Rust": (),
    "Swift": (),
    "Kotlin": (),
    "Dart": (),
    "Flutter": (),
    "Angular": (),
    "Vue.js": ("vue", "vuejs"),
    "Next.js": ("nextjs",),
    "Express": ("express.js",),
    "Django": (),
    "Flask": (),
    "Spring": ("spring boot",),
    "MongoDB": ("mongo",),
    "PostgreSQL": ("postgres",),
    "MySQL": (),
    "Redis": (),
    "Docker": (),
    "Kubernetes": ("k8s",),
    "AWS": (),
    "Azure": (),
    "GCP": ("google cloud",),
    "Terraform": (),
    "Git": (),
    "GitHub": (),
    "GitLab": (),
    "CI/CD": (),
    "HTML": ("html5",),
    "CSS": ("css3",),
    "SASS": ("scss",),
    "LESS": (),
    "Tailwind CSS": ("tailwind",),
    "Bootstrap": (),
    "GraphQL": (),
    "REST API": ("rest apis", "restful"),
    "SQL": (),
    "Microservices": (),
    "Agile": (),
    "Scrum": (),
}

# Ordinary words unless spelled exactly like the technology.
_CASE_SENSITIVE = {"Go", "LESS", "Express", "Spring", "Swift", "Rust", "Dart"}

LANGUAGES: tuple[str, ...] = (
    "English", "Portuguese", "Spanish", "French", "German", "Italian",
    "Inglês", "Português", "Espanhol", "Francês", "Alemão", "Italiano",
)

_EDGE = r"A-Za-z0-9_+#À-ÿ"
PATTERN_CACHE_SIZE = 512


@lru_cache(maxsize=PATTERN_CACHE_SIZE)
def _pattern(term: str) -> re.Pattern[str]:
    flags = 0 if term in _CASE_SENSITIVE else re.IGNORECASE
    return re.compile(rf"(?<![{_EDGE}]){re.escape(term)}(?![{_EDGE}])", flags)


def mentions(text: str, term: str) -> bool:
    """True if ``term`` occurs in ``text`` as a whole token."""
    return bool(_pattern(term).search(text or ""))


def find_skills(text: str, limit: int | None = None) -> list[str]:
    """Canonical names of vocabulary technologies mentioned in ``text``, in vocabulary order."""
    found: list[str] = []
    if not text:
        return found
    for canonical, aliases in TECH_SKILLS.items():
        if any(mentions(text, term) for term in (canonical, *aliases)):
            found.append(canonical)
            if limit is not None and len(found) >= limit:
                break
    return found


def find_languages(text: str) -> list[str]:
    return [lang for lang in LANGUAGES if mentions(text, lang)]


def dedupe(items: list[str]) -> list[str]:
    """Drop case-insensitive repeats and blanks, keeping first spelling and order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        text = (item or "").strip()
        key = text.lower()
        if text and key not in seen:
            seen.add(key)
            out.append(text)
    return out
