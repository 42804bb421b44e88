from typing import List, Protocol

from case_chat.exception.custom_exception import RetrievalError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.thread_pool import run_sync


class SearchableIndex(Protocol):
    def similarity_search(self, query: str, k: int) -> List[str]: ...


class FaissRetriever:
    """
    Returns the top-K chunk texts for a query from the shared vector index.

    Ranking is whatever the index does; results are passed on untouched.
    Failures surface as RetrievalError rather than an empty result.
    """

    def __init__(self, index: SearchableIndex, top_k: int = 5):
        self.index = index
        self.top_k = top_k

    async def retrieve(self, query: str) -> List[str]:
        try:
            fragments = await run_sync(self.index.similarity_search, query, self.top_k)
        except Exception as e:
            log.error("Retrieval failed | error=%s", str(e))
            raise RetrievalError("Retrieval failed", e) from e

        log.info("Retrieved fragments | k=%d | count=%d", self.top_k, len(fragments))
        return [f for f in fragments if f]
