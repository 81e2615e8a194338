"""Ledger of dispatched applications (CSV) with file locking."""
from __future__ import annotations

import csv
import fcntl
from datetime import datetime, timezone
from pathlib import Path

from autoapply.log import get_logger
from autoapply.models import ApplicationDraft

log = get_logger(__name__)

HEADERS: list[str] = [
    "job_id", "title", "company", "url", "recipient",
    "status", "channel", "used_fallback", "error", "recorded_at",
]


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class ApplicationTracker:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.writer(f).writerow(HEADERS)
                _unlock(f)
            log.info("Created application tracker → %s", self.path.name)

    def record(self, draft: ApplicationDraft, channel: str = "") -> None:
        """Append the outcome of one dispatch attempt."""
        self.ensure()
        row = {
            "job_id": draft.job.id,
            "title": draft.job.title,
            "company": draft.job.company,
            "url": draft.job.url,
            "recipient": draft.recipient or "",
            "status": draft.status.value,
            "channel": channel,
            "used_fallback": "yes" if draft.used_fallback else "no",
            "error": (draft.error or "")[:200],
            "recorded_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M"),
        }
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            _lock(f)
            csv.DictWriter(f, fieldnames=HEADERS).writerow(row)
            _unlock(f)
        log.debug("Tracked: %s @ %s [%s]", draft.job.title, draft.job.company, draft.status.value)

    def entries(self) -> list[dict[str, str]]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return rows

    def sent_job_ids(self) -> set[str]:
        return {r["job_id"] for r in self.entries() if r.get("status") == "sent"}
