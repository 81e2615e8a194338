"""We Work Remotely — scrapes the public search page (no API available)."""
from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup

from autoapply.log import get_logger
from autoapply.models import JobPosting
from autoapply.sources.base import JobSource, build_posting

log = get_logger(__name__)

BASE_URL = "https://weworkremotely.com"
SEARCH_URL = f"{BASE_URL}/remote-jobs/search"

_LISTING_SELECTOR = "article.feature, li.feature, section.jobs li"


def _text(node, selector: str) -> str:
    found = node.select_one(selector)
    return found.get_text(" ", strip=True) if found else ""


def _listing_url(node) -> str:
    links = [a.get("href", "") for a in node.find_all("a", href=True)]
    for href in links:
        if "/remote-jobs/" in href:
            return urljoin(BASE_URL, href)
    return urljoin(BASE_URL, links[0]) if links else ""


class WeWorkRemotelySource(JobSource):
    name = "WeWorkRemotely"

    def parse(self, html: str) -> list[JobPosting]:
        soup = BeautifulSoup(html, "html.parser")
        jobs: list[JobPosting] = []
        seen: set[str] = set()
        for node in soup.select(_LISTING_SELECTOR):
            title = _text(node, "span.title")
            company = _text(node, "span.company")
            if not title or not company:
                continue
            url = _listing_url(node)
            if url in seen:
                continue
            seen.add(url)

            time_tag = node.find("time")
            jobs.append(
                build_posting(
                    title=title,
                    company=company,
                    description=_text(node, "div.listing-container"),
                    url=url,
                    source=self.name,
                    posted_at=time_tag.get("datetime") if time_tag else None,
                    location=_text(node, "span.region") or "Remote",
                    employment_type="Full-time",
                )
            )
        log.debug("WeWorkRemotely page had %d listing(s)", len(jobs))
        return jobs

    def search(self, keywords: list[str], location: str | None) -> list[JobPosting]:
        r = self._get(SEARCH_URL, params={"term": " ".join(keywords[:3])})
        return self.parse(r.text)
