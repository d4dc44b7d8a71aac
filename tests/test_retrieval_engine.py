"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.retrieval_engine import RetrievalEngine
from services.errors import EmbeddingError, RetrievalError
from models.chunk import Chunk, ScoredChunk


def scored(index, similarity):
    return ScoredChunk(
        chunk=Chunk(filename="paper1.pdf", chunk_index=index, chunk_text=f"chunk {index}"),
        similarity=similarity,
    )


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""

    @pytest.fixture
    def mock_vector_store(self):
        return Mock()

    @pytest.fixture
    def mock_embedding_client(self):
        client = Mock()
        client.embed.return_value = [0.1] * 1536
        return client

    @pytest.fixture
    def retrieval_engine(self, mock_vector_store, mock_embedding_client):
        return RetrievalEngine(mock_vector_store, mock_embedding_client)

    def test_initialization(self, retrieval_engine, mock_vector_store, mock_embedding_client):
        """The engine keeps its collaborators and default top_k."""
        assert retrieval_engine.vector_store == mock_vector_store
        assert retrieval_engine.embedding_client == mock_embedding_client
        assert retrieval_engine.top_k == 5

    def test_retrieve_empty_query(self, retrieval_engine, mock_embedding_client):
        """A blank query returns nothing without embedding."""
        assert retrieval_engine.retrieve("") == []
        assert retrieval_engine.retrieve("   ") == []
        mock_embedding_client.embed.assert_not_called()

    def test_retrieve_embeds_then_searches(
        self, retrieval_engine, mock_embedding_client, mock_vector_store
    ):
        """The query is embedded and then searched."""
        mock_vector_store.search.return_value = [scored(0, 0.9), scored(1, 0.8)]

        result = retrieval_engine.retrieve("How does Tabata work?")

        mock_embedding_client.embed.assert_called_once_with("How does Tabata work?")
        mock_vector_store.search.assert_called_once_with([0.1] * 1536, top_k=5)
        assert [r.chunk.chunk_index for r in result] == [0, 1]

    def test_low_similarity_chunks_are_kept(self, retrieval_engine, mock_vector_store):
        """Low-similarity chunks are not filtered out."""
        mock_vector_store.search.return_value = [scored(0, 0.12), scored(1, 0.05)]

        assert len(retrieval_engine.retrieve("query")) == 2

    def test_result_capped_at_top_k(self, mock_vector_store, mock_embedding_client):
        """Results are capped at top_k."""
        engine = RetrievalEngine(mock_vector_store, mock_embedding_client, top_k=2)
        mock_vector_store.search.return_value = [scored(i, 1 - i / 10) for i in range(4)]

        assert len(engine.retrieve("query")) == 2

    def test_embedding_error_propagates(self, retrieval_engine, mock_embedding_client):
        """Embedding errors propagate."""
        mock_embedding_client.embed.side_effect = EmbeddingError("rate limited")

        with pytest.raises(EmbeddingError, match="rate limited"):
            retrieval_engine.retrieve("query")

    def test_retrieval_error_propagates(self, retrieval_engine, mock_vector_store):
        """Vector store errors propagate."""
        mock_vector_store.search.side_effect = RetrievalError("Supabase match error")

        with pytest.raises(RetrievalError):
            retrieval_engine.retrieve("query")
