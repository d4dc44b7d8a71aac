"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List

from config import TOP_K
from models.chunk import ScoredChunk
from services.embedding_client import EmbeddingClient
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed a query and fetch its top-k most similar chunks."""

    def __init__(self, vector_store: VectorStore, embedding_client: EmbeddingClient, top_k: int = TOP_K):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_client: EmbeddingClient instance for query embedding
            top_k: Number of chunks returned per query
        """
        self.vector_store = vector_store
        self.embedding_client = embedding_client
        self.top_k = top_k
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, query: str) -> List[ScoredChunk]:
        """
        Retrieve the chunks most relevant to ``query``.

        The query embedding lives only for the duration of this call.
        Embedding and search failures propagate unchanged
        (EmbeddingError / RetrievalError).

        Args:
            query: User question

        Returns:
            At most ``top_k`` scored chunks, most similar first;
            empty for a blank query
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_client.embed(query)

        scored_chunks = self.vector_store.search(query_embedding, top_k=self.top_k)[: self.top_k]
        logger.info(
            f"Retrieved {len(scored_chunks)} chunks",
            extra={"filenames": sorted({scored.chunk.filename for scored in scored_chunks})},
        )
        return scored_chunks
