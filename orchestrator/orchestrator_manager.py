# orchestrator/orchestrator_manager.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from case_chat.graph.orchestrator import ConversationOrchestrator
from case_chat.graph.session_locks import SessionLockRegistry
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.redis_cache.redis_client import RedisBlobStore, create_redis_client
from case_chat.src.document_chat.completion import LangChainCompleter
from case_chat.src.document_chat.context import ContextAssembler
from case_chat.src.document_chat.history import SessionHistoryStore
from case_chat.src.document_chat.retrieval import FaissRetriever
from case_chat.src.document_ingestion.data_ingestion import DataIngestor
from case_chat.src.document_ingestion.index_poller import IndexJobPoller
from case_chat.src.document_ingestion.indexer import LocalIndexer
from case_chat.src.document_ingestion.text_extraction import PyPdfTextExtractor
from case_chat.src.document_ingestion.vector_index import FaissVectorIndex
from case_chat.storage.blob_store import LocalBlobStore
from case_chat.utils.config_loader import AppConfig, load_app_config
from case_chat.utils.model_loader import ModelLoader
from case_chat.utils.rendering import render_html


@dataclass
class Services:
    """Everything a request handler needs, built once per process."""

    config: AppConfig
    conversation: ConversationOrchestrator
    history_store: SessionHistoryStore
    ingestor: DataIngestor
    poller: IndexJobPoller
    indexer: LocalIndexer


def _blob_stores(config: AppConfig):
    """Return the (pdf, chunk, history) containers for the configured backend."""
    storage = config.storage
    if storage.backend == "redis":
        client = create_redis_client(config.redis)
        return (
            RedisBlobStore(client, storage.pdf_container),
            RedisBlobStore(client, storage.chunk_container),
            RedisBlobStore(client, storage.history_container),
        )
    return (
        LocalBlobStore(storage.root_dir, storage.pdf_container),
        LocalBlobStore(storage.root_dir, storage.chunk_container),
        LocalBlobStore(storage.root_dir, storage.history_container),
    )


def build_services(config: AppConfig) -> Services:
    """
    Wire concrete collaborators from configuration:
      - blob containers (local filesystem or Redis)
      - FAISS index + local indexer (trigger and status source)
      - retriever / completer / history store behind the conversation graph
    """
    log.info("Building services | storage_backend=%s", config.storage.backend)

    loader = ModelLoader(config)
    vector_index = FaissVectorIndex(config.faiss.index_dir, loader.load_embeddings())
    pdf_store, chunk_store, history_blobs = _blob_stores(config)

    indexer = LocalIndexer(config.indexer.name, chunk_store, vector_index)
    history_store = SessionHistoryStore(
        history_blobs, config.system_prompt, config.storage.history_extension
    )

    chat_cfg = config.chat
    conversation = ConversationOrchestrator(
        retriever=FaissRetriever(vector_index, top_k=config.retriever.top_k),
        completer=LangChainCompleter(loader.load_llm("rag"), chat_cfg.fallback_answer),
        history_store=history_store,
        assembler=ContextAssembler(),
        renderer=render_html if chat_cfg.render_html else None,
        session_locks=(
            SessionLockRegistry(ttl=chat_cfg.session_lock_ttl_seconds)
            if chat_cfg.serialize_sessions
            else None
        ),
    )

    ingestor = DataIngestor(
        pdf_store=pdf_store,
        chunk_store=chunk_store,
        extractor=PyPdfTextExtractor(),
        indexer=indexer,
        chunk_size=config.chunking.size,
        chunk_overlap=config.chunking.overlap,
    )

    return Services(
        config=config,
        conversation=conversation,
        history_store=history_store,
        ingestor=ingestor,
        poller=IndexJobPoller(indexer),
        indexer=indexer,
    )


class ServiceManager:
    """
    Lazily builds the Services on first use.

    Model clients and the FAISS index are loaded once and shared by every
    request handled by this process.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config
        self._services: Optional[Services] = None

    def get_services(self) -> Services:
        if self._services is None:
            config = self._config or load_app_config()
            log.info("Creating services")
            self._services = build_services(config)
        else:
            log.debug("Reusing cached services")
        return self._services


service_manager = ServiceManager()


def get_services() -> Services:
    """FastAPI dependency returning the process-wide services."""
    return service_manager.get_services()
