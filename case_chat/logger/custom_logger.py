import logging

from rich.console import Console
from rich.logging import RichHandler

# -------------------------------------------------
# Console with proper color handling
# -------------------------------------------------
console = Console(force_terminal=True, color_system="truecolor")

# -------------------------------------------------
# Libraries that are too chatty at INFO
# -------------------------------------------------
NOISY_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "sqlalchemy.dialects": logging.WARNING,
    "sqlalchemy.orm": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "httpx": logging.WARNING,
    "urllib3": logging.WARNING,
    "faiss": logging.WARNING,
    "faiss.loader": logging.WARNING,
}


class CustomLogger:
    """
    Configures the root logger once with a RichHandler and hands out named loggers.

    Every module logs through the shared GLOBAL_LOGGER, using
    "Event description | key=%s | key=%s" messages with %-style arguments.
    """

    _configured = False

    def __init__(self, level: int = logging.INFO):
        if not CustomLogger._configured:
            logging.basicConfig(
                level=level,
                format="%(message)s",  # Rich handles formatting
                datefmt="[%H:%M:%S.%f]",
                handlers=[
                    RichHandler(
                        console=console,
                        rich_tracebacks=True,
                        tracebacks_show_locals=False,
                        show_time=True,
                        show_level=True,
                        show_path=True,
                        log_time_format="%H:%M:%S.%f",
                    )
                ],
            )

            for name, lvl in NOISY_LOGGERS.items():
                logging.getLogger(name).setLevel(lvl)

            CustomLogger._configured = True

    def get_logger(self, name: str = "case_chat") -> logging.Logger:
        return logging.getLogger(name)
