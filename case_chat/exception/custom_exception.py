import sys
import traceback
from typing import Optional


class CaseChatException(Exception):
    """
    Base exception for the project.

    Captures where the underlying error was raised so logs can point at the
    failing line even after the error has been wrapped:

        except Exception as e:
            raise CaseChatException("Failed to save uploaded files", e) from e

    `error_details` may be the original exception, the `sys` module (the
    exception currently being handled is used) or omitted.
    """

    def __init__(self, error_message: object, error_details: object = None):
        self.error_message = str(error_message)

        exc_type, exc_value, exc_tb = None, None, None
        if isinstance(error_details, BaseException):
            exc_type, exc_value, exc_tb = (
                type(error_details),
                error_details,
                error_details.__traceback__,
            )
        elif error_details is sys or error_details is None:
            exc_type, exc_value, exc_tb = sys.exc_info()

        # walk to the innermost frame (where the error actually happened)
        last_tb = exc_tb
        while last_tb is not None and last_tb.tb_next is not None:
            last_tb = last_tb.tb_next

        self.file_name: Optional[str] = (
            last_tb.tb_frame.f_code.co_filename if last_tb else None
        )
        self.lineno: Optional[int] = last_tb.tb_lineno if last_tb else None
        self.traceback_str = (
            "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
            if exc_type
            else ""
        )

        super().__init__(self.error_message)

    def describe(self) -> str:
        if self.file_name:
            return (
                f"Error in [{self.file_name}] at line [{self.lineno}] "
                f"| Message: {self.error_message}"
            )
        return self.error_message

    def __str__(self) -> str:
        return self.error_message


class ConfigurationError(CaseChatException, ValueError):
    """Invalid construction/request parameters, rejected before any work begins."""


class UploadValidationError(CaseChatException):
    """An ingestion request failed validation; the message names the file or field."""


class TransportError(CaseChatException):
    """An external collaborator (search, model, storage, indexer) failed."""


class RetrievalError(TransportError):
    pass


class CompletionError(TransportError):
    pass


class BlobStoreError(TransportError):
    pass


class JobStatusQueryError(TransportError):
    pass


class IndexerTriggerError(TransportError):
    pass


class DeadlineExceededError(CaseChatException):
    """The caller-supplied deadline elapsed while a collaborator call was in flight."""
