from fastapi import APIRouter, Depends

from db.database import get_db
from db.file_repository import CaseFileRepository

router = APIRouter()


@router.get("/files/{case_number}")
async def list_files(case_number: str, db=Depends(get_db)):
    files = await CaseFileRepository().list_files(db, case_number.strip())
    return {
        "caseNumber": case_number,
        "fileCount": len(files),
        "fileNames": [f.stored_name for f in files],
    }
