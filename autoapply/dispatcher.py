"""Send application emails: Resend HTTP API first, SMTP as fallback."""
from __future__ import annotations

import base64
import html
import smtplib
import time
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable

import requests

from autoapply.config import Settings
from autoapply.errors import BatchLimitExceeded, DeliveryFailed
from autoapply.log import get_logger
from autoapply.models import ApplicationDraft, ApplicationStatus, CandidateProfile
from autoapply.retry import exponential, retry
from autoapply.tracker import ApplicationTracker

log = get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class DispatchResult:
    job_id: str
    status: ApplicationStatus
    channel: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ApplicationStatus.SENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "channel": self.channel,
            "error": self.error,
        }


_SIGNATURE = {
    "pt": ("Atenciosamente,", "Telefone", "Localização", "Candidatura para"),
    "en": ("Best regards,", "Phone", "Location", "Application for"),
    "es": ("Atentamente,", "Teléfono", "Ubicación", "Solicitud para"),
}


def render_html(draft: ApplicationDraft, profile: CandidateProfile) -> str:
    """HTML email body: the cover letter plus the candidate's signature block."""
    closing, phone_label, location_label, heading = _SIGNATURE.get(draft.language, _SIGNATURE["pt"])
    letter = html.escape(draft.cover_letter).replace("\n", "<br>")
    extra = ""
    if profile.phone:
        extra += f"<p>{phone_label}: {html.escape(profile.phone)}</p>"
    if profile.location:
        extra += f"<p>{location_label}: {html.escape(profile.location)}</p>"

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(draft.subject)}</title></head>
<body style="font-family:Arial,sans-serif;line-height:1.6;color:#333">
<div style="max-width:600px;margin:0 auto;padding:20px">
<h2 style="color:#2c3e50">{heading} {html.escape(draft.job.title)}</h2>
<div style="background-color:#f8f9fa;padding:20px;border-left:4px solid #007bff;margin:20px 0">
{letter}
</div>
<div style="margin-top:30px;padding-top:20px;border-top:1px solid #eee">
<p><strong>{closing}</strong><br>
{html.escape(profile.name)}<br>
{html.escape(profile.email)}</p>
{extra}
</div>
</div>
</body>
</html>"""


def validate_mail_config(settings: Settings) -> dict[str, Any]:
    """Report which delivery channels are usable and what is missing."""
    errors: list[str] = []
    if not settings.resend_api_key:
        errors.append("RESEND_API_KEY not set")
    if not settings.resend_sender_email:
        errors.append("RESEND_SENDER_EMAIL not set")
    resend_ok = bool(settings.resend_api_key and settings.resend_sender_email)

    if not settings.smtp_host:
        errors.append("SMTP_HOST not set")
    if not settings.smtp_user:
        errors.append("SMTP_USER not set")
    if not settings.smtp_password:
        errors.append("SMTP_PASSWORD not set")
    smtp_ok = bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)

    return {
        "valid": resend_ok or smtp_ok,
        "resend": resend_ok,
        "smtp": smtp_ok,
        "errors": errors,
    }


@retry(exponential(max_attempts=3, base_delay=3.0), retryable=(smtplib.SMTPException, OSError))
def _smtp_send(
    host: str, port: int, user: str, password: str,
    from_addr: str, to_addr: str, msg: MIMEMultipart, timeout: float,
) -> None:
    if port == 465:
        with smtplib.SMTP_SSL(host, port, timeout=timeout) as server:
            server.login(user, password)
            server.sendmail(from_addr, [to_addr], msg.as_string())
        return
    with smtplib.SMTP(host, port, timeout=timeout) as server:
        server.starttls()
        server.login(user, password)
        server.sendmail(from_addr, [to_addr], msg.as_string())


class Dispatcher:
    def __init__(
        self,
        settings: Settings,
        tracker: ApplicationTracker | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.settings = settings
        self.tracker = tracker
        self._sleep = sleep or time.sleep

    # ── channels ────────────────────────────────────────────────────────

    def send_resend(
        self, to: str, subject: str, html_body: str, attachments: list[Attachment],
    ) -> None:
        s = self.settings
        if not (s.resend_api_key and s.resend_sender_email):
            raise DeliveryFailed("Resend not configured")

        payload = {
            "from": s.resend_sender_email,
            "to": [to],
            "subject": subject,
            "html": html_body,
            "attachments": [
                {
                    "filename": a.filename,
                    "content": base64.b64encode(a.content).decode("ascii"),
                    "content_type": a.content_type,
                }
                for a in attachments
            ],
        }
        try:
            r = requests.post(
                RESEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {s.resend_api_key}"},
                timeout=s.mail_timeout,
            )
            r.raise_for_status()
        except requests.RequestException as exc:
            detail = getattr(getattr(exc, "response", None), "text", "") or str(exc)
            raise DeliveryFailed(f"Resend API error: {detail[:200]}") from exc

    def send_smtp(
        self, to: str, subject: str, html_body: str, plain_body: str, attachments: list[Attachment],
    ) -> None:
        s = self.settings
        if not (s.smtp_host and s.smtp_user and s.smtp_password):
            raise DeliveryFailed("SMTP not configured (set SMTP_HOST, SMTP_USER, SMTP_PASSWORD in .env)")

        from_addr = s.smtp_from or s.smtp_user
        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = to
        body = MIMEMultipart("alternative")
        body.attach(MIMEText(plain_body, "plain", "utf-8"))
        body.attach(MIMEText(html_body, "html", "utf-8"))
        msg.attach(body)
        for a in attachments:
            part = MIMEApplication(a.content, _subtype=a.content_type.split("/")[-1])
            part.add_header("Content-Disposition", "attachment", filename=a.filename)
            msg.attach(part)

        try:
            _smtp_send(s.smtp_host, s.smtp_port, s.smtp_user, s.smtp_password,
                       from_addr, to, msg, s.mail_timeout)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailed(f"SMTP error: {exc}") from exc

    # ── public API ──────────────────────────────────────────────────────

    def _finish(self, draft: ApplicationDraft, channel: str | None) -> DispatchResult:
        if self.tracker is not None:
            try:
                self.tracker.record(draft, channel or "")
            except OSError as exc:
                log.warning("Could not record application for %s: %s", draft.job.id, exc)
        return DispatchResult(draft.job.id, draft.status, channel, draft.error)

    def dispatch(
        self,
        draft: ApplicationDraft,
        profile: CandidateProfile,
        resume: Attachment | None = None,
    ) -> DispatchResult:
        """Send one draft and move it to ``sent`` or ``failed``."""
        if draft.status is not ApplicationStatus.PENDING:
            return DispatchResult(draft.job.id, draft.status, None, f"Application already {draft.status.value}")

        if not draft.recipient:
            draft.mark_failed("No recipient address for this job")
            log.info("Skipping %s @ %s — no recipient", draft.job.title, draft.job.company)
            return self._finish(draft, None)

        attachments = [resume] if resume else []
        html_body = render_html(draft, profile)

        try:
            self.send_resend(draft.recipient, draft.subject, html_body, attachments)
            channel = "resend"
        except DeliveryFailed as exc:
            log.warning("Resend failed (%s), trying SMTP", exc)
            try:
                self.send_smtp(draft.recipient, draft.subject, html_body, draft.cover_letter, attachments)
                channel = "smtp"
            except DeliveryFailed as smtp_exc:
                log.error("Email to %s failed: %s", draft.recipient, smtp_exc)
                draft.mark_failed(f"Resend and SMTP both failed: {smtp_exc.message}")
                return self._finish(draft, None)

        draft.mark_sent()
        log.info("Application for %s @ %s sent to %s via %s",
                 draft.job.title, draft.job.company, draft.recipient, channel)
        return self._finish(draft, channel)

    def dispatch_batch(
        self,
        drafts: list[ApplicationDraft],
        profile: CandidateProfile,
        resume: Attachment | None = None,
        *,
        cap: int | None = None,
    ) -> list[DispatchResult]:
        """Send drafts one after another, pausing ``send_delay`` seconds between sends."""
        cap = self.settings.batch_cap if cap is None else cap
        if len(drafts) > cap:
            raise BatchLimitExceeded(f"At most {cap} applications per request (got {len(drafts)})")

        results: list[DispatchResult] = []
        sent_before = False
        for draft in drafts:
            will_send = draft.status is ApplicationStatus.PENDING and bool(draft.recipient)
            if will_send and sent_before:
                self._sleep(self.settings.send_delay)
            results.append(self.dispatch(draft, profile, resume))
            sent_before = sent_before or will_send

        log.info("Batch done — %d sent, %d failed",
                 sum(r.ok for r in results), sum(not r.ok for r in results))
        return results
