import asyncio
import weakref

from cachetools import TTLCache

from case_chat.logger import GLOBAL_LOGGER as log


class SessionLockRegistry:
    """
    Per-session asyncio locks, evicted after `ttl` seconds without use.

    Advisory and in-process only: it serializes load->save cycles for one
    session inside this worker, not across workers or hosts.

    The TTL cache alone could drop a lock that a cycle still holds (expiry or
    maxsize pressure) and hand the next caller a fresh one. Every lock handed
    out is also tracked weakly, so a lock stays in use for as long as any
    caller still references it.
    """

    def __init__(self, maxsize: int = 10000, ttl: int = 3600):
        self.cache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._live: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get_lock(self, session_id: str) -> asyncio.Lock:
        lock = self.cache.get(session_id)
        if lock is None:
            lock = self._live.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            log.debug("Creating session lock | session_id=%s", session_id)
        # re-inserting refreshes the TTL while the session is active
        self.cache[session_id] = lock
        self._live[session_id] = lock
        return lock
