"""Reconciles locally chunked text files against the vector store."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Set, Union

from models.chunk import Chunk, ChunkKey
from services.chunk_ingestor import ChunkIngestor, UploadSummary, chunk_directory

logger = logging.getLogger(__name__)


@dataclass
class VerificationReport:
    local_count: int = 0
    stored_count: int = 0
    missing: List[Chunk] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


class ChunkVerifier:
    """Finds chunks that exist locally but were never uploaded, and re-uploads them."""

    def __init__(self, ingestor: ChunkIngestor):
        self.ingestor = ingestor

    def local_chunks(self, output_dir: Union[str, Path]) -> Dict[ChunkKey, Chunk]:
        chunks = chunk_directory(self.ingestor.chunker, output_dir)
        return {chunk.key: chunk for file_chunks in chunks.values() for chunk in file_chunks}

    def find_missing(self, output_dir: Union[str, Path]) -> VerificationReport:
        """
        Compare local (filename, chunk_index) pairs with the stored ones.

        Args:
            output_dir: Directory holding the extracted ``.txt`` files

        Returns:
            VerificationReport whose ``missing`` chunks are in filename, index order

        Raises:
            RetrievalError: If the stored keys cannot be listed
        """
        local = self.local_chunks(output_dir)
        stored: Set[ChunkKey] = self.ingestor.vector_store.list_chunk_keys()
        missing = [local[key] for key in sorted(local) if key not in stored]

        if missing:
            logger.warning(f"{len(missing)} local chunks are missing from the vector store")
        else:
            logger.info("All local chunks are uploaded")
        return VerificationReport(local_count=len(local), stored_count=len(stored), missing=missing)

    def reupload(self, missing: List[Chunk]) -> UploadSummary:
        """Embed and upsert the given chunks, continuing past individual failures."""
        summary = self.ingestor.upload_chunks(missing)
        logger.info(f"Re-upload complete: {summary.uploaded} uploaded, {summary.failed} failed")
        return summary
