from typing import List

from pydantic import BaseModel, ConfigDict, Field

from case_chat.exception.custom_exception import ConfigurationError


class Chunk(BaseModel):
    """One overlapping window of a source document's text."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1, description="1-based position of this chunk within the document")
    start: int = Field(..., ge=0, description="Character offset of the first character in the source text")
    text: str = Field(..., description="Literal chunk content")

    @property
    def end(self) -> int:
        """Exclusive end offset: the span is [start, end)."""
        return self.start + len(self.text)


def validate_window(size: int, overlap: int) -> int:
    """Check a size/overlap pair and return the stride between window starts."""
    if size <= 0:
        raise ConfigurationError(f"Chunk size must be positive (size={size})")
    if overlap < 0 or overlap >= size:
        raise ConfigurationError(
            f"Chunk overlap must satisfy 0 <= overlap < size (size={size}, overlap={overlap})"
        )
    return size - overlap


def split_text(text: str, size: int, overlap: int) -> List[Chunk]:
    """
    Split `text` into fixed-size windows that advance by `size - overlap` characters.

    Every window is exactly `size` long except the last, which takes whatever
    remains. Windows stop as soon as one reaches the end of the text, so the
    last chunk is never empty and never fully contained in its predecessor.
    Empty text yields no chunks.
    """
    stride = validate_window(size, overlap)

    chunks: List[Chunk] = []
    start = 0
    total = len(text)

    while start < total:
        end = min(start + size, total)
        chunks.append(Chunk(index=len(chunks) + 1, start=start, text=text[start:end]))
        if end == total:
            break
        start += stride

    return chunks
