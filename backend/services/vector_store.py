"""Vector store implementations: Supabase pgvector and an in-memory fallback."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

import numpy as np
from supabase import Client

from config import CHUNKS_TABLE, MATCH_CHUNKS_RPC, TOP_K, VECTOR_STORE_BACKEND
from models.chunk import Chunk, ChunkKey, ScoredChunk
from models.records import RecordMappingError, chunk_from_row, chunk_to_row, scored_chunk_from_row
from services.errors import ConfigurationError, RetrievalError
from services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)


class VectorStore(ABC):
    """Stores chunk embeddings and answers top-k similarity queries."""

    @abstractmethod
    def upsert_chunk(self, chunk: Chunk) -> None:
        """Insert or replace the chunk identified by (filename, chunk_index)."""

    @abstractmethod
    def search(self, query_embedding: List[float], top_k: int = TOP_K) -> List[ScoredChunk]:
        """Return at most ``top_k`` chunks ordered by descending similarity."""

    @abstractmethod
    def list_chunk_keys(self) -> Set[ChunkKey]:
        """Return every stored (filename, chunk_index) pair."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored chunks."""

    @staticmethod
    def _validate_search_args(query_embedding: List[float], top_k: int) -> None:
        if query_embedding is None or len(query_embedding) == 0:
            raise ValueError("Query embedding cannot be empty")
        if top_k <= 0:
            raise ValueError("top_k must be positive")


class SupabaseVectorStore(VectorStore):
    """Chunk storage in the Supabase ``pdf_chunks`` table with pgvector search."""

    PAGE_SIZE = 1000

    def __init__(
        self,
        client: Optional[Client] = None,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        table_name: str = CHUNKS_TABLE,
        match_function: str = MATCH_CHUNKS_RPC,
    ):
        """
        Initialize the vector store with a Supabase client.

        Args:
            client: Existing Supabase client; created from credentials if omitted
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key
            table_name: Name of the chunks table
            match_function: Name of the similarity-search stored procedure

        Raises:
            ConfigurationError: If no client is given and credentials are missing
        """
        self.client = client or create_supabase_client(supabase_url, supabase_key)
        self.table_name = table_name
        self.match_function = match_function

        logger.info(f"Initialized SupabaseVectorStore with table: {table_name}")

    def upsert_chunk(self, chunk: Chunk) -> None:
        """
        Store a chunk with its embedding.

        Raises:
            RetrievalError: If the database operation fails
        """
        row = chunk_to_row(chunk)
        try:
            self.client.table(self.table_name).upsert(
                row, on_conflict="filename,chunk_index"
            ).execute()
        except Exception as e:
            raise self._wrap("Failed to upsert chunk", e)
        logger.debug(f"Upserted {chunk.filename} [chunk {chunk.chunk_index}]")

    def search(self, query_embedding: List[float], top_k: int = TOP_K) -> List[ScoredChunk]:
        """
        Find the chunks most similar to a query embedding.

        Similarity is computed server-side by the ``match_pdf_chunks``
        procedure, which orders rows by descending similarity:

            CREATE OR REPLACE FUNCTION match_pdf_chunks(
              query_embedding vector(1536),
              match_count int
            )
            RETURNS TABLE (filename text, chunk_index int, chunk_text text, similarity float)
            LANGUAGE sql STABLE AS $$
              SELECT filename, chunk_index, chunk_text,
                     1 - (embedding <=> query_embedding) AS similarity
              FROM pdf_chunks
              ORDER BY embedding <=> query_embedding
              LIMIT match_count;
            $$;

        Args:
            query_embedding: Embedding vector for the user query
            top_k: Number of chunks to retrieve

        Returns:
            List of ScoredChunk objects in server order

        Raises:
            ValueError: If query_embedding is empty or top_k is invalid
            RetrievalError: If the RPC call fails or returns a malformed row
        """
        self._validate_search_args(query_embedding, top_k)

        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": list(query_embedding),
                    "match_count": top_k,
                },
            ).execute()
        except Exception as e:
            raise self._wrap("Failed to search vector store", e)

        rows = response.data or []
        if not isinstance(rows, list):
            raise RetrievalError("Unexpected response from similarity search")

        try:
            scored_chunks = [scored_chunk_from_row(row) for row in rows[:top_k]]
        except (RecordMappingError, TypeError, ValueError) as e:
            raise self._wrap("Unexpected row from similarity search", e)
        logger.debug(f"Found {len(scored_chunks)} chunks for query")
        return scored_chunks

    def list_chunk_keys(self) -> Set[ChunkKey]:
        """
        Page through the table and collect every (filename, chunk_index).

        Raises:
            RetrievalError: If a page request fails
        """
        keys: Set[ChunkKey] = set()
        offset = 0
        while True:
            try:
                response = (
                    self.client.table(self.table_name)
                    .select("filename,chunk_index")
                    .order("filename")
                    .order("chunk_index")
                    .range(offset, offset + self.PAGE_SIZE - 1)
                    .execute()
                )
            except Exception as e:
                raise self._wrap("Failed to list stored chunks", e)

            rows = response.data or []
            try:
                keys.update(chunk_from_row(row).key for row in rows)
            except (RecordMappingError, TypeError, ValueError) as e:
                raise self._wrap("Unexpected row while listing stored chunks", e)
            if len(rows) < self.PAGE_SIZE:
                break
            offset += self.PAGE_SIZE
        return keys

    def count(self) -> int:
        try:
            response = self.client.table(self.table_name).select("filename", count="exact").execute()
        except Exception as e:
            raise self._wrap("Failed to count chunks in vector store", e)
        return response.count if response.count is not None else 0

    @staticmethod
    def _wrap(context: str, error: Exception) -> RetrievalError:
        # postgrest's APIError exposes the PostgREST message directly
        message = getattr(error, "message", None) or str(error) or None
        logger.error(f"{context}: {message}")
        return RetrievalError(message)


class InMemoryVectorStore(VectorStore):
    """Process-local store using cosine similarity, for development and tests."""

    def __init__(self):
        self._chunks: Dict[ChunkKey, Chunk] = {}
        self._dimensions: Optional[int] = None
        self._lock = threading.Lock()

    def upsert_chunk(self, chunk: Chunk) -> None:
        if chunk.embedding is None:
            raise ValueError(f"Chunk {chunk.filename}[{chunk.chunk_index}] has no embedding")
        with self._lock:
            if self._dimensions is None:
                self._dimensions = len(chunk.embedding)
            elif len(chunk.embedding) != self._dimensions:
                raise ValueError(
                    f"Embedding dimension mismatch: expected {self._dimensions}, "
                    f"got {len(chunk.embedding)}"
                )
            self._chunks[chunk.key] = chunk

    def search(self, query_embedding: List[float], top_k: int = TOP_K) -> List[ScoredChunk]:
        self._validate_search_args(query_embedding, top_k)
        with self._lock:
            chunks = list(self._chunks.values())
            dimensions = self._dimensions
        if not chunks:
            return []
        if len(query_embedding) != dimensions:
            raise RetrievalError(
                f"Query embedding has {len(query_embedding)} dimensions, store holds {dimensions}"
            )

        matrix = np.asarray([chunk.embedding for chunk in chunks], dtype=float)
        query = np.asarray(query_embedding, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, (matrix @ query) / norms, 0.0)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            ScoredChunk(
                chunk=Chunk(
                    filename=chunks[i].filename,
                    chunk_index=chunks[i].chunk_index,
                    chunk_text=chunks[i].chunk_text,
                ),
                similarity=float(scores[i]),
            )
            for i in order
        ]

    def list_chunk_keys(self) -> Set[ChunkKey]:
        with self._lock:
            return set(self._chunks)

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)


def create_vector_store(backend: str = VECTOR_STORE_BACKEND, client: Optional[Client] = None) -> VectorStore:
    """Build the vector store named by ``backend`` ("supabase" or "memory")."""
    if backend == "memory":
        logger.warning("Using in-memory vector store; chunks are not persisted")
        return InMemoryVectorStore()
    if backend == "supabase":
        return SupabaseVectorStore(client=client)
    raise ConfigurationError(f"Unknown VECTOR_STORE_BACKEND: {backend}")
