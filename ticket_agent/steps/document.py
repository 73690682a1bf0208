from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ticket_agent.errors import FatalInputError, UnsupportedFormat

PDF_MIME = "application/pdf"


@dataclass
class DocumentInput:
    text: Optional[str] = None
    data: Optional[bytes] = None
    mime: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> "DocumentInput":
        path = Path(path)
        return cls(data=path.read_bytes(), mime=guess_mime(path.name))

    @property
    def size(self) -> Optional[int]:
        return len(self.data) if self.data is not None else None


def guess_mime(file_name: str) -> str:
    return PDF_MIME if file_name.lower().endswith(".pdf") else "text/plain"


def _pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError, OSError) as exc:
        raise FatalInputError(f"Failed to parse PDF: {exc}") from exc
    return "\n".join(pages)


def parse_document(document: DocumentInput) -> str:
    if document.text and document.text.strip():
        return document.text.strip()

    if document.data is not None and document.mime:
        if document.mime == PDF_MIME:
            return _pdf_text(document.data).strip()
        if document.mime.startswith("text/"):
            return document.data.decode("utf-8", errors="replace").strip()
        raise UnsupportedFormat(f"Unsupported file type: {document.mime}")

    raise FatalInputError(
        "No valid input provided. Please provide either pasted text or file bytes with a mime type."
    )
