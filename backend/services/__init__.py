"""Services for the VO2Max assistant backend."""
from .errors import (
    AppError,
    CompletionError,
    ConfigurationError,
    EmbeddingError,
    NotFoundError,
    RetrievalError,
    UpstreamError,
    ValidationError,
)
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_client import EmbeddingClient
from .vector_store import InMemoryVectorStore, SupabaseVectorStore, VectorStore, create_vector_store
from .retrieval_engine import RetrievalEngine
from .prompt_builder import SettingsStore, StaticSettingsStore, build_prompt, select_template
from .llm_client import CompletionStreamer, iter_stream_deltas
from .rag_pipeline import RagChatSession, RagPipeline, RequestState
from .assistant_chat import AssistantChat
from .chunk_ingestor import ChunkIngestor
from .chunk_verifier import ChunkVerifier
from .verification_codes import VerificationCodeService, create_verification_store
from .metrics_store import InMemoryMetricsStore, MetricKind, MetricsStore, SupabaseMetricsStore, create_metrics_stores

__all__ = [
    'AppError', 'CompletionError', 'ConfigurationError', 'EmbeddingError', 'RetrievalError',
    'UpstreamError', 'ValidationError', 'DocumentLoader', 'ChunkingEngine', 'EmbeddingClient',
    'InMemoryVectorStore', 'SupabaseVectorStore', 'VectorStore', 'create_vector_store',
    'RetrievalEngine', 'SettingsStore', 'StaticSettingsStore', 'build_prompt', 'select_template',
    'CompletionStreamer', 'iter_stream_deltas', 'RagChatSession', 'RagPipeline', 'RequestState',
    'AssistantChat', 'ChunkIngestor', 'ChunkVerifier', 'VerificationCodeService',
    'create_verification_store', 'NotFoundError', 'InMemoryMetricsStore', 'MetricKind', 'MetricsStore',
    'SupabaseMetricsStore', 'create_metrics_stores',
]
