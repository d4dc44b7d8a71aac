"""Error taxonomy shared by the services and the HTTP layer."""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status and JSON body."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = 400
    code = "VALIDATION_ERROR"


class ConfigurationError(AppError):
    """Required credentials or settings are not configured."""

    code = "CONFIGURATION_ERROR"


class NotFoundError(AppError):
    """The requested record does not exist or belongs to another user."""

    status_code = 404
    code = "NOT_FOUND"


class UpstreamError(AppError):
    """A hosted provider (embeddings, completions, vector search) failed."""

    code = "UPSTREAM_ERROR"
    default_message = "Upstream provider error"

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(message or self.default_message, details)


class EmbeddingError(UpstreamError):
    code = "EMBEDDING_ERROR"
    default_message = "OpenAI embedding error"


class RetrievalError(UpstreamError):
    code = "RETRIEVAL_ERROR"
    default_message = "Supabase match error"


class CompletionError(UpstreamError):
    code = "COMPLETION_ERROR"
    default_message = "OpenAI completion error"


def upstream_message(payload: Any) -> Optional[str]:
    """
    Pull a human-readable message out of a provider error payload.

    Handles both ``{"error": {"message": ...}}`` (OpenAI) and
    ``{"message": ...}`` (PostgREST) shapes.
    """
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str) and error:
        return error
    if isinstance(payload.get("message"), str):
        return payload["message"]
    return None
