import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from case_chat.src.document_ingestion.data_ingestion import StoredFile
from db.file_repository import CaseFileRepository
from db.models import Base


@pytest.mark.asyncio
async def test_files_are_listed_per_case(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'files.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    repo = CaseFileRepository()

    try:
        async with session_factory() as db:
            added = await repo.add_files(
                db,
                "ABC",
                [
                    StoredFile(original_name="deposition.pdf", stored_name="deposition_CNABC.pdf"),
                    StoredFile(original_name="exhibit.pdf", stored_name="exhibit_CNABC.pdf"),
                ],
            )
            await repo.add_files(
                db, "XYZ", [StoredFile(original_name="other.pdf", stored_name="other_CNXYZ.pdf")]
            )
            # re-upload of an archived name is not registered twice
            again = await repo.add_files(
                db, "ABC", [StoredFile(original_name="deposition.pdf", stored_name="deposition_CNABC.pdf")]
            )

            files = await repo.list_files(db, "ABC")
            missing = await repo.list_files(db, "NOPE")
    finally:
        await engine.dispose()

    assert (added, again) == (2, 0)
    assert sorted(f.stored_name for f in files) == ["deposition_CNABC.pdf", "exhibit_CNABC.pdf"]
    assert {f.filename for f in files} == {"deposition.pdf", "exhibit.pdf"}
    assert all(f.created_at is not None for f in files)
    assert missing == []
