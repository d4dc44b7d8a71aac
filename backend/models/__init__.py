"""Data models for the VO2Max assistant backend."""
from .document import Document, Page
from .chunk import Chunk, ChunkKey, ScoredChunk
from .protocol import ConfidenceLevel, FormData, ProtocolData, ProtocolRanking
from .records import Biomarker, MetricRecord, RecordMappingError, SessionMetric, VerificationCode, WeeklyMetric
from .api import (
    AssistantChatRequest,
    ChatMessage,
    GeneratePlansResponse,
    ImprovementPlan,
    RagQueryRequest,
    RetrievedChunk,
    RetrieveResponse,
    VerificationCodeRequest,
    VerifyCodeRequest,
    VO2MaxData,
)

__all__ = [
    "Document",
    "Page",
    "Chunk",
    "ChunkKey",
    "ScoredChunk",
    "ConfidenceLevel",
    "FormData",
    "ProtocolData",
    "ProtocolRanking",
    "RecordMappingError",
    "VerificationCode",
    "MetricRecord",
    "WeeklyMetric",
    "SessionMetric",
    "Biomarker",
    "AssistantChatRequest",
    "ChatMessage",
    "GeneratePlansResponse",
    "ImprovementPlan",
    "RagQueryRequest",
    "RetrievedChunk",
    "RetrieveResponse",
    "VerificationCodeRequest",
    "VerifyCodeRequest",
    "VO2MaxData",
]
