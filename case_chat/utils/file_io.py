from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel

from case_chat.exception.custom_exception import UploadValidationError

SUPPORTED_EXTENSIONS = {".pdf"}


class UploadedPdf(BaseModel):
    filename: str
    data: bytes


def validate_pdf_uploads(files: Iterable[UploadedPdf], case_number: Optional[str]) -> str:
    """
    Check an ingestion request in order: files first (non-empty, .pdf), then
    the case number. Returns the case number stripped of surrounding blanks.
    """
    files = list(files)
    if not files:
        raise UploadValidationError("No files uploaded.")

    for f in files:
        label = f.filename or "(unnamed)"
        if not f.data:
            raise UploadValidationError(f"File {label} is empty.")
        if Path(f.filename).suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise UploadValidationError(f"File {label} is not a PDF.")

    if case_number is None or not case_number.strip():
        raise UploadValidationError("Case number is required.")

    return case_number.strip()


def _safe(part: str) -> str:
    # only alphanum, dash, underscore survive into object names
    return re.sub(r"[^a-zA-Z0-9_\-]", "_", part)


def archived_pdf_name(filename: str, case_number: str) -> str:
    """deposition.pdf + case ABC -> deposition_CNABC.pdf"""
    p = Path(Path(filename).name)
    return f"{_safe(p.stem)}_CN{_safe(case_number)}{p.suffix.lower()}"


def chunk_object_name(source_stem: str, index: int) -> str:
    return f"{source_stem}_chunk_{index}.txt"
