"""Chunking engine with sentence-boundary aware splitting."""
import logging
from typing import List, Tuple

from models.chunk import Chunk
from config import CHUNK_SIZE

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


class ChunkingEngine:
    """Segments extracted document text into fixed-size retrievable chunks."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
        """
        if chunk_size <= 1:
            raise ValueError("chunk_size must be greater than 1")
        self.chunk_size = chunk_size

    def split_spans(self, text: str) -> List[Span]:
        """
        Compute the raw chunk boundaries for ``text``.

        Each span nominally covers ``chunk_size`` characters. When the span
        does not reach the end of the text, its end moves back to just after
        the last period at or before the nominal end, provided that period
        lies past the span's midpoint. Spans are contiguous: every span
        starts where the previous one ended.

        Args:
            text: Text to split

        Returns:
            List of (start, end) offsets into ``text``
        """
        spans: List[Span] = []
        start = 0
        length = len(text)
        while start < length:
            end = start + self.chunk_size
            if end < length:
                period = text.rfind(".", 0, end + 1)
                if period > start + self.chunk_size / 2:
                    end = period + 1
            end = min(end, length)
            spans.append((start, end))
            start = end
        return spans

    def split_text(self, text: str) -> List[str]:
        """
        Split text into trimmed chunks, dropping whitespace-only pieces.

        Args:
            text: Text to split

        Returns:
            List of chunk strings in document order
        """
        pieces = (text[start:end].strip() for start, end in self.split_spans(text))
        return [piece for piece in pieces if piece]

    def chunk_document(self, filename: str, text: str) -> List[Chunk]:
        """
        Chunk a document's text into Chunk objects indexed from 0.

        Args:
            filename: Source PDF filename stored with every chunk
            text: Extracted document text

        Returns:
            List of chunks without embeddings
        """
        chunks = [
            Chunk(filename=filename, chunk_index=index, chunk_text=piece)
            for index, piece in enumerate(self.split_text(text))
        ]
        logger.debug(f"Created {len(chunks)} chunks from {filename}")
        return chunks
