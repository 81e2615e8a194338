"""Query every job source in parallel and merge the results."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed

from autoapply.log import get_logger
from autoapply.models import JobPosting
from autoapply.sources.base import JobSource
from autoapply.vocabulary import mentions

log = get_logger(__name__)


def _fetch_source(source: JobSource, keywords: list[str], location: str | None) -> list[JobPosting]:
    """Wrapper for parallel source fetching."""
    try:
        return source.fetch(keywords, location)
    except Exception as exc:
        log.error("[%s] FAILED: %s", source.name, exc)
        return []


def _norm(value: str) -> str:
    return " ".join((value or "").lower().split())


def dedupe_jobs(jobs: list[JobPosting], *, legacy: bool = False) -> list[JobPosting]:
    """Drop repeats of the same (title, company) pair and of the same URL.

    With ``legacy=True`` only the title is compared, which is how older
    releases behaved.
    """
    seen_keys: set[tuple[str, ...]] = set()
    seen_urls: set[str] = set()
    unique: list[JobPosting] = []
    for job in jobs:
        key = (_norm(job.title),) if legacy else (_norm(job.title), _norm(job.company))
        url = job.url.strip().rstrip("/").lower()
        if key in seen_keys or (url and url in seen_urls):
            continue
        seen_keys.add(key)
        if url:
            seen_urls.add(url)
        unique.append(job)
    return unique


def aggregate(
    sources: list[JobSource],
    keywords: list[str],
    location: str | None = None,
    *,
    per_source_cap: int = 50,
    total_cap: int = 100,
    timeout: float = 60.0,
    legacy_dedupe: bool = False,
) -> list[JobPosting]:
    """Fan out to ``sources``, then dedupe, sort newest first and cap.

    A source that fails, or is still running when ``timeout`` expires,
    contributes nothing; the others are unaffected.
    """
    if not sources:
        return []

    results: dict[int, list[JobPosting]] = {}
    log.info("Searching %d source(s) in parallel...", len(sources))
    pool = ThreadPoolExecutor(max_workers=len(sources))
    try:
        futures = {
            pool.submit(_fetch_source, src, keywords, location): i
            for i, src in enumerate(sources)
        }
        try:
            for future in as_completed(futures, timeout=timeout):
                results[futures[future]] = future.result()[:per_source_cap]
        except FuturesTimeout:
            late = [sources[i].name for f, i in futures.items() if not f.done()]
            log.warning("Timed out after %.0fs waiting for: %s", timeout, ", ".join(late))
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    # Registry order, not completion order, so equal timestamps sort the same every run.
    all_jobs = [job for i in sorted(results) for job in results[i]]
    unique = dedupe_jobs(all_jobs, legacy=legacy_dedupe)
    unique.sort(key=lambda j: j.posted_at, reverse=True)

    log.info("Total jobs: %d fetched, %d unique, returning %d",
             len(all_jobs), len(unique), min(len(unique), total_cap))
    return unique[:total_cap]


def filter_by_keywords(jobs: list[JobPosting], keywords: list[str]) -> list[JobPosting]:
    """Keep postings whose title, description or skills mention any keyword."""
    terms = [k for k in keywords if k and k.strip()]
    if not terms:
        return list(jobs)
    kept: list[JobPosting] = []
    for job in jobs:
        haystack = " ".join([job.title, job.description, " ".join(job.skills)])
        if any(mentions(haystack, term.strip()) for term in terms):
            kept.append(job)
    return kept
