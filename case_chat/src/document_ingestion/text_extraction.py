import tempfile
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader

from case_chat.exception.custom_exception import CaseChatException
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.thread_pool import run_sync


class PyPdfTextExtractor:
    """Extracts the text layer of a PDF page by page, joined with newlines."""

    def _extract(self, data: bytes, filename: str) -> str:
        with tempfile.TemporaryDirectory(prefix="case_chat_") as tmp:
            path = Path(tmp) / (Path(filename).name or "upload.pdf")
            path.write_bytes(data)
            pages = PyPDFLoader(str(path)).load()
        log.info("PDF text extracted | file=%s | pages=%d", filename, len(pages))
        return "\n".join(p.page_content for p in pages)

    async def extract(self, data: bytes, filename: str) -> str:
        try:
            return await run_sync(self._extract, data, filename)
        except Exception as e:
            log.error("Failed extracting text | file=%s | error=%s", filename, str(e))
            raise CaseChatException(f"Failed extracting text from {filename}", e) from e
