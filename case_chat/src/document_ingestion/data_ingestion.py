from __future__ import annotations

import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from case_chat.exception.custom_exception import IndexerTriggerError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.chunking import split_text, validate_window
from case_chat.src.document_ingestion.indexer import TriggerOutcome, TriggerStatus
from case_chat.src.interfaces import BlobStore, IndexerTrigger, TextExtractor
from case_chat.utils.file_io import (
    UploadedPdf,
    archived_pdf_name,
    chunk_object_name,
    validate_pdf_uploads,
)


# Session ids become blob names, so only these characters are accepted from clients
SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:\-]{1,128}$")


def is_valid_session_id(session_id: str) -> bool:
    return bool(SESSION_ID_PATTERN.match(session_id)) and session_id not in {".", ".."}


# Function to generate a unique session ID:
def generate_session_id() -> str:
    """Generate a unique, blob-name-safe session ID with timestamp."""
    now = datetime.now()

    day = now.strftime("%d")  # 18
    month = now.strftime("%b").lower()  # nov
    year = now.strftime("%Y")  # 2025
    time_part = now.strftime("%I-%M_%p")  # 03-13_PM

    # Clean time format (remove leading 0, lowercase am/pm)
    time_part = time_part.lstrip("0").lower()

    unique_id = uuid.uuid4().hex[:8]
    return f"session_{day}_{month}_{year}_{time_part}_{unique_id}"


class StoredFile(BaseModel):
    original_name: str
    stored_name: str
    chunk_names: List[str] = Field(default_factory=list)


class IngestionResult(BaseModel):
    case_number: str
    files: List[StoredFile]
    trigger: TriggerOutcome

    @property
    def chunk_count(self) -> int:
        return sum(len(f.chunk_names) for f in self.files)


class DataIngestor:
    """
    Ingest case PDFs so they become searchable.

    - validate the whole request before touching storage
    - archive each PDF as <stem>_CN<caseNumber>.pdf
    - extract its text and split it into overlapping windows
    - store one <stored-stem>_chunk_<n>.txt object per window
    - trigger the indexer once for the whole batch (best effort)
    """

    def __init__(
        self,
        pdf_store: BlobStore,
        chunk_store: BlobStore,
        extractor: TextExtractor,
        indexer: IndexerTrigger,
        chunk_size: int = 2000,
        chunk_overlap: int = 200,
    ):
        # bad window settings are a configuration error, caught before any upload
        validate_window(chunk_size, chunk_overlap)

        self.pdf_store = pdf_store
        self.chunk_store = chunk_store
        self.extractor = extractor
        self.indexer = indexer
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

        log.info(
            "DataIngestor initialized | chunk_size=%d | chunk_overlap=%d", chunk_size, chunk_overlap
        )

    async def _store_file(self, upload: UploadedPdf, case_number: str) -> StoredFile:
        stored_name = archived_pdf_name(upload.filename, case_number)
        log.info("Uploading file for archiving | file=%s | stored_as=%s", upload.filename, stored_name)
        await self.pdf_store.write(stored_name, upload.data, overwrite=True)

        text = await self.extractor.extract(upload.data, upload.filename)
        chunks = split_text(text, self.chunk_size, self.chunk_overlap)

        stem = Path(stored_name).stem
        chunk_names = []
        for chunk in chunks:
            name = chunk_object_name(stem, chunk.index)
            await self.chunk_store.write(name, chunk.text.encode("utf-8"), overwrite=True)
            chunk_names.append(name)

        log.info("Chunks stored | file=%s | chunks=%d", stored_name, len(chunk_names))
        return StoredFile(original_name=upload.filename, stored_name=stored_name, chunk_names=chunk_names)

    async def ingest(self, files: List[UploadedPdf], case_number: str) -> IngestionResult:
        case_number = validate_pdf_uploads(files, case_number)
        log.info("Processing upload | case_number=%s | files=%d", case_number, len(files))

        stored = [await self._store_file(f, case_number) for f in files]

        log.info("Completed upload, calling indexer | case_number=%s", case_number)
        outcome = await self.indexer.trigger()

        if outcome.status == TriggerStatus.THROTTLED:
            log.warning("Indexer trigger throttled | message=%s", outcome.message)
        elif outcome.status == TriggerStatus.FAILED:
            raise IndexerTriggerError(f"Failed to run indexer: {outcome.message}")

        return IngestionResult(case_number=case_number, files=stored, trigger=outcome)
