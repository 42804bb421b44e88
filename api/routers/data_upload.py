from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile

from case_chat.exception.custom_exception import UploadValidationError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.file_io import UploadedPdf
from db.database import get_db
from db.file_repository import CaseFileRepository
from orchestrator.orchestrator_manager import Services, get_services

router = APIRouter()

MULTIPART_REQUIRED = "Request must be multipart/form-data POST with a file."


async def to_uploaded_pdf(part: UploadFile) -> UploadedPdf:
    # a part without a filename keeps it empty so validation rejects it
    return UploadedPdf(filename=part.filename or "", data=await part.read())


@router.api_route("/upload", methods=["GET", "POST"])
async def upload_files(
    request: Request,
    services: Services = Depends(get_services),
    db=Depends(get_db),
):
    """
    Upload endpoint:
      - multipart form with one or more .pdf parts and a `caseNumber` field
      - archives each PDF as <stem>_CN<caseNumber>.pdf and stores its chunks
      - triggers the indexer (a busy indexer is logged, not reported)
      - registers the archived files under the case number
    """
    content_type = request.headers.get("content-type", "")
    if request.method != "POST" or not content_type.lower().startswith("multipart/form-data"):
        raise UploadValidationError(MULTIPART_REQUIRED)

    form = await request.form()
    try:
        uploads = []
        case_number = None
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                uploads.append(await to_uploaded_pdf(value))
            elif key.lower() == "casenumber":
                case_number = value
    finally:
        await form.close()

    if not uploads:
        raise UploadValidationError(MULTIPART_REQUIRED)

    result = await services.ingestor.ingest(uploads, case_number)
    await CaseFileRepository().add_files(db, result.case_number, result.files)

    log.info(
        "Upload completed | case_number=%s | files=%d | chunks=%d | indexer=%s",
        result.case_number,
        len(result.files),
        result.chunk_count,
        result.trigger.status.value,
    )
    return {
        "message": "Upload and indexing complete!",
        "caseNumber": result.case_number,
        "files": [
            {"fileName": f.original_name, "storedAs": f.stored_name, "chunks": len(f.chunk_names)}
            for f in result.files
        ],
        "chunkCount": result.chunk_count,
        "indexer": {"status": result.trigger.status.value, "message": result.trigger.message},
    }
