import re

import pytest

from case_chat.exception.custom_exception import (
    ConfigurationError,
    IndexerTriggerError,
    UploadValidationError,
)
from case_chat.src.document_ingestion.data_ingestion import (
    DataIngestor,
    generate_session_id,
    is_valid_session_id,
)
from case_chat.src.document_ingestion.indexer import TriggerStatus
from case_chat.utils.file_io import UploadedPdf, archived_pdf_name, chunk_object_name
from conftest import FakeExtractor, FakeTrigger, MemoryBlobStore


def _ingestor(extractor=None, trigger=None, **kwargs):
    pdfs, chunks = MemoryBlobStore("pdfs"), MemoryBlobStore("chunks")
    ingestor = DataIngestor(
        pdf_store=pdfs,
        chunk_store=chunks,
        extractor=extractor or FakeExtractor(default="x" * 4500),
        indexer=trigger or FakeTrigger(),
        **kwargs,
    )
    return ingestor, pdfs, chunks


@pytest.mark.asyncio
async def test_pdf_is_archived_chunked_and_indexer_triggered():
    trigger = FakeTrigger()
    ingestor, pdfs, chunks = _ingestor(trigger=trigger, chunk_size=2000, chunk_overlap=200)

    result = await ingestor.ingest([UploadedPdf(filename="deposition.pdf", data=b"%PDF-1.7")], " ABC ")

    assert result.case_number == "ABC"
    assert list(pdfs.objects) == ["deposition_CNABC.pdf"]
    assert sorted(chunks.objects) == [
        "deposition_CNABC_chunk_1.txt",
        "deposition_CNABC_chunk_2.txt",
        "deposition_CNABC_chunk_3.txt",
    ]
    assert len(chunks.objects["deposition_CNABC_chunk_3.txt"]) == 900
    assert result.chunk_count == 3
    assert trigger.calls == 1
    assert result.trigger.status == TriggerStatus.ACCEPTED


@pytest.mark.asyncio
async def test_throttled_trigger_is_swallowed():
    ingestor, _, chunks = _ingestor(trigger=FakeTrigger(TriggerStatus.THROTTLED, "429 Too Many Requests"))

    result = await ingestor.ingest([UploadedPdf(filename="a.pdf", data=b"1")], "C1")

    assert result.trigger.status == TriggerStatus.THROTTLED
    assert result.chunk_count == 3


@pytest.mark.asyncio
async def test_failed_trigger_is_raised():
    ingestor, _, _ = _ingestor(trigger=FakeTrigger(TriggerStatus.FAILED, "indexer missing"))

    with pytest.raises(IndexerTriggerError):
        await ingestor.ingest([UploadedPdf(filename="a.pdf", data=b"1")], "C1")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "files,case_number,message",
    [
        ([], "C1", "No files uploaded."),
        ([UploadedPdf(filename="empty.pdf", data=b"")], "C1", "File empty.pdf is empty."),
        ([UploadedPdf(filename="notes.docx", data=b"1")], "C1", "File notes.docx is not a PDF."),
        ([UploadedPdf(filename="", data=b"%PDF")], "C1", "File (unnamed) is not a PDF."),
        ([UploadedPdf(filename="a.pdf", data=b"1")], "   ", "Case number is required."),
        ([UploadedPdf(filename="a.pdf", data=b"1")], None, "Case number is required."),
        # files are checked before the case number
        ([UploadedPdf(filename="bad.txt", data=b"1")], None, "File bad.txt is not a PDF."),
    ],
)
async def test_validation_failures_store_nothing(files, case_number, message):
    trigger = FakeTrigger()
    ingestor, pdfs, chunks = _ingestor(trigger=trigger)

    with pytest.raises(UploadValidationError) as exc:
        await ingestor.ingest(files, case_number)

    assert str(exc.value) == message
    assert pdfs.objects == {} and chunks.objects == {}
    assert trigger.calls == 0


@pytest.mark.asyncio
async def test_extension_check_is_case_insensitive():
    ingestor, pdfs, _ = _ingestor()

    await ingestor.ingest([UploadedPdf(filename="Scan.PDF", data=b"1")], "7")

    assert list(pdfs.objects) == ["Scan_CN7.pdf"]


@pytest.mark.asyncio
async def test_pdf_without_text_stores_no_chunks():
    ingestor, pdfs, chunks = _ingestor(extractor=FakeExtractor(default=""))

    result = await ingestor.ingest([UploadedPdf(filename="scan.pdf", data=b"1")], "7")

    assert list(pdfs.objects) == ["scan_CN7.pdf"]
    assert chunks.objects == {}
    assert result.chunk_count == 0


def test_bad_window_is_rejected_at_construction():
    with pytest.raises(ConfigurationError):
        _ingestor(chunk_size=100, chunk_overlap=100)


def test_object_naming():
    assert archived_pdf_name("deposition.pdf", "ABC") == "deposition_CNABC.pdf"
    assert archived_pdf_name("../weird name.pdf", "12/34") == "weird_name_CN12_34.pdf"
    assert chunk_object_name("deposition_CNABC", 4) == "deposition_CNABC_chunk_4.txt"


def test_generated_session_ids_are_unique_and_accepted():
    first, second = generate_session_id(), generate_session_id()

    assert first != second
    assert re.match(r"^session_\d{2}_[a-z]{3}_\d{4}_", first)
    assert is_valid_session_id(first)


@pytest.mark.parametrize("session_id", ["../etc/passwd", "a/b", "..", "", "x" * 200, "has space"])
def test_unusable_session_ids(session_id):
    assert not is_valid_session_id(session_id)
