from __future__ import annotations

import hashlib
import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from case_chat.logger import GLOBAL_LOGGER as log

_PLACEHOLDER_ID = "__faiss_init__"
_INDEX_FILES = ("index.faiss", "index.pkl")


class FaissVectorIndex:
    """
    FAISS store for chunk texts, persisted under `index_dir`.

    `fingerprints.json` records every chunk already embedded (source name +
    sha256 of the text), so re-running the indexer over the same chunk
    container adds nothing twice. Searches and writes share one lock since
    the underlying index is not safe for concurrent mutation.
    """

    def __init__(self, index_dir: str | Path, embeddings: Embeddings):
        self.root = Path(index_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.fingerprint_path = self.root / "fingerprints.json"
        self.embeddings = embeddings
        self._store: Optional[FAISS] = None
        self._lock = threading.Lock()
        self._seen: Dict[str, Dict[str, Any]] = self._read_fingerprints()

    def _read_fingerprints(self) -> Dict[str, Dict[str, Any]]:
        if not self.fingerprint_path.exists():
            return {}
        try:
            seen = json.loads(self.fingerprint_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.error(
                "Unreadable fingerprint file, chunks will be re-embedded | path=%s | error=%s",
                str(self.fingerprint_path),
                str(e),
            )
            return {}
        if not isinstance(seen, dict):
            return {}
        log.info("Fingerprints loaded | count=%d | index_dir=%s", len(seen), str(self.root))
        return seen

    def _write_fingerprints(self) -> None:
        self.fingerprint_path.write_text(
            json.dumps(self._seen, ensure_ascii=False, indent=2), encoding="utf-8"
        )

    @staticmethod
    def fingerprint(text: str, source: str) -> str:
        return f"{source}::{hashlib.sha256(text.encode('utf-8')).hexdigest()}"

    def _vectorstore(self) -> FAISS:
        if self._store is not None:
            return self._store

        if all((self.root / name).exists() for name in _INDEX_FILES):
            log.info("Opening FAISS index | index_dir=%s", str(self.root))
            self._store = FAISS.load_local(
                str(self.root), self.embeddings, allow_dangerous_deserialization=True
            )
        else:
            # FAISS cannot start empty; the placeholder fixes the vector dimension
            log.info("Creating FAISS index | index_dir=%s", str(self.root))
            placeholder = Document(
                page_content=_PLACEHOLDER_ID, metadata={"id": _PLACEHOLDER_ID, "source": "system"}
            )
            self._store = FAISS.from_documents(
                [placeholder], self.embeddings, ids=[_PLACEHOLDER_ID]
            )
            self._store.save_local(str(self.root))
        return self._store

    def add_texts(self, texts: List[str], metadatas: List[Dict[str, Any]]) -> int:
        """Embed chunks not seen before; returns how many were added."""
        with self._lock:
            store = self._vectorstore()

            fresh: Dict[str, Document] = {}
            for text, md in zip(texts, metadatas):
                key = self.fingerprint(text, md.get("source", "unknown"))
                if key in self._seen or key in fresh:
                    continue
                fresh[key] = Document(page_content=text, metadata=dict(md))

            if not fresh:
                log.info("No new chunks to embed | candidates=%d", len(texts))
                return 0

            store.add_documents(list(fresh.values()), ids=list(fresh))
            store.save_local(str(self.root))

            # only recorded once the vectors are safely on disk
            for key, doc in fresh.items():
                self._seen[key] = {"source": doc.metadata.get("source"), "length": len(doc.page_content)}
            self._write_fingerprints()

            log.info(
                "Chunks embedded into FAISS | added=%d | skipped=%d | index_dir=%s",
                len(fresh),
                len(texts) - len(fresh),
                str(self.root),
            )
            return len(fresh)

    def similarity_search(self, query: str, k: int) -> List[str]:
        with self._lock:
            # one extra hit in case the placeholder is among them
            docs = self._vectorstore().similarity_search(query, k=k + 1)
        return [d.page_content for d in docs if d.metadata.get("id") != _PLACEHOLDER_ID][:k]

    def reset(self) -> None:
        """Drop the index and every fingerprint so the next run re-embeds all chunks."""
        with self._lock:
            self._store = None
            self._seen = {}
            for name in _INDEX_FILES:
                (self.root / name).unlink(missing_ok=True)
            self._write_fingerprints()
            log.info("FAISS index reset | index_dir=%s", str(self.root))
