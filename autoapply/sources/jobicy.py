"""Jobicy — remote jobs published as an RSS feed."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import feedparser

from autoapply.models import JobPosting
from autoapply.sources.base import JobSource, build_posting, html_to_text

FEED_URL = "https://jobicy.com/"


def _published(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def _title_and_company(entry: Any) -> tuple[str, str]:
    title = (entry.get("title") or "").strip()
    company = (entry.get("job_listing_company") or entry.get("author") or "").strip()
    if not company and " at " in title:
        title, _, company = title.rpartition(" at ")
    return title.strip(), company.strip()


class JobicySource(JobSource):
    name = "Jobicy"

    def parse(self, xml: str) -> list[JobPosting]:
        feed = feedparser.parse(xml)
        jobs: list[JobPosting] = []
        for entry in feed.entries:
            title, company = _title_and_company(entry)
            body = entry.get("summary") or ""
            if entry.get("content"):
                body = entry["content"][0].get("value") or body
            jobs.append(
                build_posting(
                    title=title,
                    company=company,
                    description=html_to_text(body),
                    url=entry.get("link", ""),
                    source=self.name,
                    posted_at=_published(entry),
                    location=entry.get("job_listing_location") or "Remote",
                    employment_type=entry.get("job_listing_job_type"),
                )
            )
        return jobs

    def search(self, keywords: list[str], location: str | None) -> list[JobPosting]:
        params = {"feed": "job_feed", "search_keywords": " ".join(keywords[:3])}
        r = self._get(FEED_URL, params=params)
        return self.parse(r.text)
