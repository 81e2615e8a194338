"""Extract plain text from an uploaded résumé (PDF, DOC or DOCX).

Works on the raw upload bytes; nothing is written to disk except the
temporary file ``antiword``/``catdoc`` need. PDFs go through ``pdftotext``
(poppler) when it is installed and through pypdf otherwise. DOCX is read
with the stdlib (``zipfile`` + ``xml.etree``).
"""
from __future__ import annotations

import io
import re
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from autoapply.config import MAX_UPLOAD_BYTES
from autoapply.errors import CorruptDocument, EmptyDocument, FileTooLarge, UnsupportedFormat
from autoapply.log import get_logger

log = get_logger(__name__)

PDF = "pdf"
DOC = "doc"
DOCX = "docx"

MEDIA_TYPES: dict[str, str] = {
    "application/pdf": PDF,
    "application/msword": DOC,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DOCX,
}
EXTENSIONS: dict[str, str] = {".pdf": PDF, ".doc": DOC, ".docx": DOCX}

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_SPACES_RE = re.compile(r"[ \t\r]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


# ── Format detection ─────────────────────────────────────────────────────


def detect_format(media_type: str | None = None, filename: str | None = None) -> str:
    """Resolve the document kind from the declared media type and/or extension."""
    if media_type:
        kind = MEDIA_TYPES.get(media_type.split(";")[0].strip().lower())
        if kind:
            return kind
    if filename:
        kind = EXTENSIONS.get(Path(filename).suffix.lower())
        if kind:
            return kind
    raise UnsupportedFormat(
        f"Unsupported document type {media_type or filename or 'unknown'!r}; use PDF, DOC or DOCX"
    )


def validate_upload(
    size: int,
    media_type: str | None = None,
    filename: str | None = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> str:
    """Check size and type of an upload before decoding it; returns the format."""
    if size > max_bytes:
        raise FileTooLarge(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    return detect_format(media_type, filename)


# ── Post-processing ──────────────────────────────────────────────────────


def clean_text(text: str) -> str:
    """Strip control characters and collapse whitespace, keeping line breaks."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\f", "\n")
    text = _CONTROL_RE.sub(" ", text)
    text = _SPACES_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    """Single-line form: every run of whitespace becomes one space."""
    return re.sub(r"\s+", " ", _CONTROL_RE.sub(" ", text or "")).strip()


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together.

    Detects the problem by checking if the space-to-character ratio is
    abnormally low, then applies heuristic space insertion.
    """
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%) — applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


# ── Decoders ─────────────────────────────────────────────────────────────


def _extract_pdf(payload: bytes) -> str:
    if not payload.startswith(b"%PDF"):
        raise CorruptDocument("Not a PDF file (missing %PDF header)")

    if shutil.which("pdftotext"):
        try:
            result = subprocess.run(
                ["pdftotext", "-layout", "-", "-"],
                input=payload,
                capture_output=True,
                timeout=30,
            )
            out = result.stdout.decode("utf-8", errors="ignore")
            if result.returncode == 0 and out.strip():
                return out
        except (OSError, subprocess.SubprocessError) as exc:
            log.debug("pdftotext failed (%s), falling back to pypdf", exc)

    from pypdf import PdfReader
    from pypdf.errors import PyPdfError

    try:
        reader = PdfReader(io.BytesIO(payload))
        pages = [_fix_spacing(page.extract_text() or "") for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise CorruptDocument(f"Could not read PDF: {exc}") from exc
    return "\n".join(pages)


def _extract_docx(payload: bytes) -> str:
    """Parse DOCX using only stdlib (zipfile + xml)."""
    ns = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
    texts: list[str] = []
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as zf:
            with zf.open("word/document.xml") as f:
                tree = ElementTree.parse(f)
    except (zipfile.BadZipFile, KeyError, ElementTree.ParseError) as exc:
        raise CorruptDocument(f"Could not read DOCX: {exc}") from exc

    for para in tree.iter(f"{ns}p"):
        parts = [node.text for node in para.iter(f"{ns}t") if node.text]
        if parts:
            texts.append("".join(parts))
    return "\n".join(texts)


_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_WORD_STREAM = "WordDocument".encode("utf-16-le")
_OLE_ENTRY_NAMES = {"Root Entry", "WordDocument", "1Table", "0Table", "Data", "CompObj"}
_UTF16_RUN_RE = re.compile(rb"(?:[\x20-\x7e\xc0-\xff]\x00){4,}")
_ASCII_RUN_RE = re.compile(rb"[\x20-\x7e\xc0-\xff\r\n\t]{6,}")
_WORD_TOKEN_RE = re.compile(r"[A-Za-zÀ-ÿ]{2,}")
_MIN_WORD_SHARE = 0.5
_MIN_WORDS = 5


def _word_count(run: str) -> int:
    """Real words in ``run``, or 0 when most of its tokens are binary noise."""
    tokens = run.split()
    words = sum(1 for t in tokens if _WORD_TOKEN_RE.fullmatch(t.strip(".,;:()!?'\"-/|")))
    return words if words >= len(tokens) * _MIN_WORD_SHARE else 0


def _scan_doc_runs(payload: bytes) -> str:
    """Last resort for .doc: pull readable text runs out of the binary."""
    runs = [m.group(0).decode("utf-16-le", errors="ignore") for m in _UTF16_RUN_RE.finditer(payload)]
    if sum(len(r) for r in runs) < 40:
        runs = [m.group(0).decode("latin-1") for m in _ASCII_RUN_RE.finditer(payload)]

    kept: list[str] = []
    words = 0
    for run in (r.strip() for r in runs):
        if not run or run in _OLE_ENTRY_NAMES:
            continue
        n = _word_count(run)
        if n:
            kept.append(run)
            words += n
    if words < _MIN_WORDS:
        if any(r.strip() for r in runs):
            raise CorruptDocument("No readable text in Word document")
        return ""
    return "\n".join(kept)


def _extract_doc(payload: bytes) -> str:
    if not payload.startswith(_OLE_MAGIC) or _WORD_STREAM not in payload:
        raise CorruptDocument("Not a Word 97-2003 document")

    for tool in ("antiword", "catdoc"):
        if not shutil.which(tool):
            continue
        with tempfile.NamedTemporaryFile(suffix=".doc") as tmp:
            tmp.write(payload)
            tmp.flush()
            try:
                result = subprocess.run([tool, tmp.name], capture_output=True, timeout=30)
            except (OSError, subprocess.SubprocessError) as exc:
                log.debug("%s failed: %s", tool, exc)
                continue
        out = result.stdout.decode("utf-8", errors="ignore")
        if result.returncode == 0 and out.strip():
            return out

    log.debug("No .doc converter on PATH — scanning binary for text runs")
    return _scan_doc_runs(payload)


_DECODERS = {PDF: _extract_pdf, DOCX: _extract_docx, DOC: _extract_doc}


# ── Public API ───────────────────────────────────────────────────────────


def extract_text(
    payload: bytes,
    media_type: str | None = None,
    filename: str | None = None,
) -> str:
    """Return cleaned plain text from a PDF, DOC or DOCX payload.

    Raises :class:`UnsupportedFormat`, :class:`CorruptDocument` or
    :class:`EmptyDocument`; never anything else for bad input.
    """
    kind = detect_format(media_type, filename)
    log.info("Extracting text from %s (%s, %d bytes)", filename or "upload", kind, len(payload))
    try:
        raw = _DECODERS[kind](payload)
    except (CorruptDocument, UnsupportedFormat):
        raise
    except Exception as exc:
        log.warning("Decoder for %s raised %s", kind, exc)
        raise CorruptDocument(f"Failed to decode {kind.upper()} file: {exc}") from exc

    text = clean_text(raw)
    if not text:
        raise EmptyDocument("No text content found in file")
    log.info("Extracted %d characters of text", len(text))
    return text
