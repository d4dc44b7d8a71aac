"""Chunk data models."""
from dataclasses import dataclass
from typing import List, Optional, Tuple

ChunkKey = Tuple[str, int]


@dataclass(frozen=True)
class Chunk:
    """Represents a document chunk for retrieval."""
    filename: str  # Source PDF, e.g. "paper1.pdf"
    chunk_index: int
    chunk_text: str
    embedding: Optional[List[float]] = None

    @property
    def key(self) -> ChunkKey:
        return (self.filename, self.chunk_index)


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk with similarity score from retrieval."""
    chunk: Chunk
    similarity: Optional[float] = None  # None when the backend does not report it
