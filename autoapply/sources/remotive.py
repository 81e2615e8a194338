"""Remotive — free API for remote tech jobs (no API key required).

Docs: https://remotive.com/api/remote-jobs
"""
from __future__ import annotations

from autoapply.models import JobPosting
from autoapply.sources.base import JobSource, build_posting, html_to_text

API_URL = "https://remotive.com/api/remote-jobs"


class RemotiveSource(JobSource):
    name = "Remotive"

    def search(self, keywords: list[str], location: str | None) -> list[JobPosting]:
        params: dict = {"limit": self.cap}
        if keywords:
            # Remotive matches the whole phrase, so a few broad terms work best.
            params["search"] = " ".join(keywords[:3])

        data = self._get(API_URL, params=params).json()

        jobs: list[JobPosting] = []
        for hit in data.get("jobs", []):
            jobs.append(
                build_posting(
                    title=hit.get("title", ""),
                    company=hit.get("company_name", ""),
                    description=html_to_text(hit.get("description", "")),
                    url=hit.get("url", ""),
                    source=self.name,
                    posted_at=hit.get("publication_date"),
                    location=hit.get("candidate_required_location") or "Remote",
                    salary=hit.get("salary"),
                    tags=hit.get("tags"),
                    employment_type=hit.get("job_type") or "Full-time",
                    company_url=hit.get("company_url") or None,
                )
            )
        return jobs
