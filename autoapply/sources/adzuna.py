"""Adzuna job search — keyed aggregator with Brazilian coverage.

Free tier: 250 requests/day.  Sign up at https://developer.adzuna.com/
"""
from __future__ import annotations

from typing import Any

from autoapply.config import DEFAULT_LOCATION, Settings
from autoapply.models import JobPosting
from autoapply.sources.base import JobSource, build_posting, html_to_text

BASE_URL = "https://api.adzuna.com/v1/api/jobs/{country}/search/1"


class AdzunaSource(JobSource):
    name = "Adzuna"

    def __init__(self, app_id: str, app_key: str, country: str = "br", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.app_id = app_id
        self.app_key = app_key
        self.country = country

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "AdzunaSource":
        return super().from_settings(
            settings,
            app_id=settings.adzuna_app_id,
            app_key=settings.adzuna_app_key,
            country=settings.adzuna_country,
            **kwargs,
        )

    def search(self, keywords: list[str], location: str | None) -> list[JobPosting]:
        params: dict = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "what_or": " ".join(keywords[:5]),
            "results_per_page": min(self.cap, 50),
            "content-type": "application/json",
        }
        # Country is part of the URL; only pass city/state level locations.
        if location and location.lower() not in (DEFAULT_LOCATION.lower(), "brazil", "remote"):
            params["where"] = location

        data = self._get(BASE_URL.format(country=self.country), params=params).json()

        jobs: list[JobPosting] = []
        for hit in data.get("results", []):
            salary_text = ""
            sal_min = hit.get("salary_min")
            sal_max = hit.get("salary_max")
            if sal_min and sal_max:
                salary_text = f"{sal_min}-{sal_max}"
            elif sal_min:
                salary_text = str(sal_min)

            jobs.append(
                build_posting(
                    title=hit.get("title", ""),
                    company=(hit.get("company") or {}).get("display_name", ""),
                    description=html_to_text(hit.get("description", "")),
                    url=hit.get("redirect_url", ""),
                    source=self.name,
                    posted_at=hit.get("created"),
                    location=(hit.get("location") or {}).get("display_name", ""),
                    salary=salary_text,
                    employment_type=hit.get("contract_time"),
                )
            )
        return jobs
