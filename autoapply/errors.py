"""Exception taxonomy for the résumé-to-application pipeline.

Each error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. Only document/format/request errors are meant to reach
the caller; the rest are absorbed by fallbacks inside the pipeline.
"""
from __future__ import annotations


class AutoApplyError(Exception):
    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
        }


# ── Document extraction (fatal to the request) ─────────────────────────


class DocumentError(AutoApplyError):
    http_status = 422


class UnsupportedFormat(DocumentError):
    code = "UNSUPPORTED_FORMAT"
    http_status = 415


class CorruptDocument(DocumentError):
    code = "CORRUPT_DOCUMENT"


class EmptyDocument(DocumentError):
    code = "EMPTY_DOCUMENT"


class FileTooLarge(DocumentError):
    code = "FILE_TOO_LARGE"
    http_status = 413


# ── Request validation ──────────────────────────────────────────────────


class InvalidRequest(AutoApplyError):
    code = "INVALID_REQUEST"
    http_status = 400


class BatchLimitExceeded(InvalidRequest):
    code = "BATCH_LIMIT"


# ── Recovered internally ────────────────────────────────────────────────


class WeakGeneration(AutoApplyError):
    """Generated cover letter failed validation; a template is used instead."""

    code = "WEAK_GENERATION"


class NoRecipientFound(AutoApplyError):
    """No recruiter address could be resolved; the job is skipped."""

    code = "NO_RECIPIENT"
    http_status = 404


class AdapterUnavailable(AutoApplyError):
    code = "ADAPTER_UNAVAILABLE"
    http_status = 502


class CollaboratorUnavailable(AutoApplyError):
    """The LLM service is not configured or could not be reached."""

    code = "COLLABORATOR_UNAVAILABLE"
    http_status = 503


class MalformedCollaboratorResponse(AutoApplyError):
    """The LLM answered, but not with something we can parse."""

    code = "MALFORMED_COLLABORATOR_RESPONSE"
    http_status = 502


class DeliveryFailed(AutoApplyError):
    """A mail channel refused or could not take the message."""

    code = "DELIVERY_FAILED"
    http_status = 502
