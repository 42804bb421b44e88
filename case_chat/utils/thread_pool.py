import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor

# shared by every blocking call made from request handlers
IO_POOL = ThreadPoolExecutor(max_workers=8, thread_name_prefix="case_chat_io")


def run_sync(func, *args, **kwargs) -> asyncio.Future:
    """
    Run a blocking call on the shared IO pool and return an awaitable.

    FAISS, PDF parsing, LangChain model calls and blob I/O all go through
    here so the event loop keeps serving other requests.
    """
    loop = asyncio.get_running_loop()
    return loop.run_in_executor(IO_POOL, functools.partial(func, *args, **kwargs))
