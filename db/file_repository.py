from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.data_ingestion import StoredFile

from .models import CaseFile


class CaseFileRepository:
    """
    Registry of archived case PDFs, queried by case number.
    """

    async def add_files(
        self, db: AsyncSession, case_number: str, files: Iterable[StoredFile]
    ) -> int:
        # archived PDFs are overwritten on re-upload, so register each stored name once
        existing = await db.execute(
            select(CaseFile.stored_name).where(CaseFile.case_number == case_number)
        )
        seen = set(existing.scalars().all())

        rows = []
        for f in files:
            if f.stored_name in seen:
                continue
            seen.add(f.stored_name)
            rows.append(
                CaseFile(case_number=case_number, filename=f.original_name, stored_name=f.stored_name)
            )
        db.add_all(rows)
        await db.commit()

        log.info(
            "Uploaded files registered | case_number=%s | count=%d",
            case_number,
            len(rows),
        )
        return len(rows)

    async def list_files(self, db: AsyncSession, case_number: str) -> List[CaseFile]:
        q = await db.execute(
            select(CaseFile)
            .where(CaseFile.case_number == case_number)
            .order_by(CaseFile.created_at, CaseFile.stored_name)
        )
        files = list(q.scalars().all())

        log.info(
            "Listed uploaded files | case_number=%s | count=%d",
            case_number,
            len(files),
        )
        return files
