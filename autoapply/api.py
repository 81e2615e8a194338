"""
HTTP API (Flask) over the résumé-to-application pipeline.

Routes take and return JSON; domain errors are rendered as
``{"error", "message", "code"}`` with the status from :mod:`autoapply.errors`.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Optional

from flask import Flask, Request, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from autoapply.aggregator import filter_by_keywords
from autoapply.dispatcher import Attachment
from autoapply.errors import AutoApplyError, FileTooLarge, InvalidRequest
from autoapply.log import get_logger
from autoapply.models import ApplicationDraft, CandidateProfile, JobPosting
from autoapply.pipeline import Pipeline, build_pipeline
from autoapply.text_extractor import MEDIA_TYPES, validate_upload

log = get_logger(__name__)

IdentityResolver = Callable[[Request], Optional[str]]

_CONTENT_TYPES = {kind: media for media, kind in MEDIA_TYPES.items()}


def _anonymous(_: Request) -> str | None:
    return None


# ── Request helpers ──────────────────────────────────────────────────────


def _json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None and request.form.get("payload"):
        try:
            data = json.loads(request.form["payload"])
        except ValueError as exc:
            raise InvalidRequest(f"Invalid JSON in 'payload' field: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _profile(data: dict[str, Any]) -> CandidateProfile:
    raw = data.get("profile")
    if not isinstance(raw, dict):
        raise InvalidRequest("'profile' must be an object")
    return CandidateProfile.from_dict(raw)


def _jobs(data: dict[str, Any]) -> list[JobPosting]:
    raw = data.get("jobs")
    if not isinstance(raw, list) or not all(isinstance(j, dict) for j in raw):
        raise InvalidRequest("'jobs' must be a list of objects")
    return [JobPosting.from_dict(j) for j in raw]


def _keywords(data: dict[str, Any]) -> list[str]:
    raw = data.get("keywords")
    if isinstance(raw, str):
        raw = [k.strip() for k in raw.split(",")]
    if not isinstance(raw, list):
        raise InvalidRequest("'keywords' must be a list of strings")
    keywords = [str(k).strip() for k in raw if str(k).strip()]
    if not keywords:
        raise InvalidRequest("At least one keyword is required")
    return keywords


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _upload() -> tuple[bytes, str | None, str | None]:
    """Résumé bytes with declared media type and filename, from multipart or raw body."""
    file = request.files.get("resume") or request.files.get("file")
    if file is not None:
        return file.read(), file.mimetype, file.filename
    payload = request.get_data()
    return payload, request.mimetype, request.args.get("filename") or request.headers.get("X-Filename")


# ── App factory ──────────────────────────────────────────────────────────


def create_app(
    pipeline: Pipeline | None = None,
    identity_resolver: IdentityResolver | None = None,
) -> Flask:
    pipeline = pipeline or build_pipeline()
    resolve_identity = identity_resolver or _anonymous
    settings = pipeline.settings

    app = Flask(__name__)
    CORS(app)
    # A little headroom over the file cap for the multipart envelope.
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + 64 * 1024
    app.extensions["autoapply.pipeline"] = pipeline

    def application_cap() -> int:
        if resolve_identity(request):
            return settings.batch_cap
        return min(settings.batch_cap, settings.guest_max_applications)

    @app.errorhandler(AutoApplyError)
    def handle_domain_error(exc: AutoApplyError):
        log.info("%s %s → %s: %s", request.method, request.path, exc.code, exc.message)
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(exc: RequestEntityTooLarge):
        err = FileTooLarge(f"File size must be less than {settings.max_upload_bytes // (1024 * 1024)}MB")
        return jsonify(err.to_dict()), err.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.name, "message": exc.description, "code": "HTTP_ERROR"}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "InternalError", "message": "Internal server error",
                        "code": "INTERNAL_ERROR"}), 500

    @app.get("/health")
    def health():
        return jsonify({
            "status": "ok",
            "llm": bool(pipeline.llm and pipeline.llm.available),
            "sources": [s.name for s in pipeline.sources],
        })

    @app.post("/resume/extract")
    def resume_extract():
        payload, media_type, filename = _upload()
        if not payload:
            raise InvalidRequest("No file uploaded")
        result = pipeline.extract_resume(payload, media_type, filename)
        return jsonify(result.to_dict())

    @app.post("/jobs/aggregate")
    def jobs_aggregate():
        data = _json_body()
        keywords = _keywords(data)
        location = str(data.get("location") or "").strip() or None
        jobs = pipeline.aggregate_jobs(keywords, location)
        if data.get("filter"):
            jobs = filter_by_keywords(jobs, keywords)
        return jsonify({"jobs": [j.to_dict() for j in jobs], "count": len(jobs)})

    @app.post("/jobs/match")
    def jobs_match():
        data = _json_body()
        limit = data.get("limit")
        if limit is not None and (not isinstance(limit, int) or limit < 1):
            raise InvalidRequest("'limit' must be a positive integer")
        matches = pipeline.match(_profile(data), _jobs(data), limit)
        return jsonify({"matches": [m.to_dict() for m in matches]})

    @app.post("/applications/compose")
    def applications_compose():
        data = _json_body()
        preview = _flag(request.args.get("preview")) or bool(data.get("preview"))
        outcomes = pipeline.compose(_profile(data), _jobs(data), preview=preview, cap=application_cap())
        return jsonify({"preview": preview, "results": [o.to_dict() for o in outcomes]})

    @app.post("/applications/send")
    def applications_send():
        data = _json_body()
        profile = _profile(data)
        raw_drafts = data.get("drafts")
        if not isinstance(raw_drafts, list) or not all(isinstance(d, dict) for d in raw_drafts):
            raise InvalidRequest("'drafts' must be a list of objects")
        drafts = [ApplicationDraft.from_dict(d) for d in raw_drafts]

        resume = None
        file = request.files.get("resume")
        if file is not None:
            content = file.read()
            kind = validate_upload(len(content), file.mimetype, file.filename, settings.max_upload_bytes)
            resume = Attachment(file.filename or f"resume.{kind}", content, _CONTENT_TYPES[kind])

        results = pipeline.send(profile, drafts, resume, cap=application_cap())
        return jsonify({
            "results": [r.to_dict() for r in results],
            "sent": sum(r.ok for r in results),
            "failed": sum(not r.ok for r in results),
        })

    @app.get("/applications/status")
    def applications_status():
        return jsonify(pipeline.mail_status())

    return app
