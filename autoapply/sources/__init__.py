from .base import JobSource
from .adzuna import AdzunaSource
from .jobicy import JobicySource
from .remotive import RemotiveSource
from .weworkremotely import WeWorkRemotelySource

from autoapply.config import Settings
from autoapply.log import get_logger

log = get_logger(__name__)

__all__ = [
    "JobSource", "AdzunaSource", "JobicySource", "RemotiveSource",
    "WeWorkRemotelySource", "get_sources",
]


def get_sources(settings: Settings) -> list[JobSource]:
    # Free boards need no credentials and are always registered.
    sources: list[JobSource] = [
        RemotiveSource.from_settings(settings),
        WeWorkRemotelySource.from_settings(settings),
        JobicySource.from_settings(settings),
    ]

    if settings.adzuna_app_id and settings.adzuna_app_key:
        sources.append(AdzunaSource.from_settings(settings))
        log.info("Registered source: Adzuna")

    log.info("Job sources: %s", ", ".join(s.name for s in sources))
    return sources
