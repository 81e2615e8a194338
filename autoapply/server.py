"""Run the HTTP API with Flask's built-in server."""
from __future__ import annotations

from autoapply.api import create_app
from autoapply.config import get_env
from autoapply.log import configure_logging, get_logger
from autoapply.pipeline import build_pipeline

log = get_logger(__name__)


def main() -> None:
    # .env is loaded by now, so LOG_LEVEL from it applies.
    configure_logging(get_env("LOG_LEVEL") or None)
    pipeline = build_pipeline()
    app = create_app(pipeline)

    host = get_env("HOST", "127.0.0.1")
    port = int(get_env("PORT", "5000") or 5000)
    log.info("Serving on http://%s:%d (sources: %s)",
             host, port, ", ".join(s.name for s in pipeline.sources))
    app.run(host=host, port=port, debug=get_env("FLASK_DEBUG").lower() in ("1", "true"))
