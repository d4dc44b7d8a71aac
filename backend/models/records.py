"""
Row mappings for the Supabase tables the backend reads and writes.

Every table has exactly one record type here and every service goes through
its ``from_row`` / ``to_row`` pair. Columns are snake_case throughout; a row
that only carries camelCase keys is treated as a schema bug and rejected.
"""
from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from models.chunk import Chunk, ScoredChunk


class RecordMappingError(ValueError):
    """Raised when a row is missing a required column."""


def _require(row: Mapping[str, Any], column: str, table: str) -> Any:
    if column not in row or row[column] is None:
        raise RecordMappingError(f"{table} row is missing column '{column}'")
    return row[column]


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- pdf_chunks -------------------------------------------------------------

def chunk_to_row(chunk: Chunk) -> Dict[str, Any]:
    """Map a Chunk to a ``pdf_chunks`` row."""
    if chunk.embedding is None:
        raise RecordMappingError(
            f"Chunk {chunk.filename}[{chunk.chunk_index}] has no embedding"
        )
    return {
        "filename": chunk.filename,
        "chunk_index": chunk.chunk_index,
        "chunk_text": chunk.chunk_text,
        "embedding": list(chunk.embedding),
    }


def chunk_from_row(row: Mapping[str, Any]) -> Chunk:
    """Map a ``pdf_chunks`` row (or RPC result row) to a Chunk."""
    return Chunk(
        filename=_require(row, "filename", "pdf_chunks"),
        chunk_index=int(_require(row, "chunk_index", "pdf_chunks")),
        chunk_text=row.get("chunk_text") or "",
        embedding=None,
    )


def scored_chunk_from_row(row: Mapping[str, Any]) -> ScoredChunk:
    """Map a ``match_pdf_chunks`` RPC row to a ScoredChunk."""
    similarity = row.get("similarity")
    return ScoredChunk(
        chunk=chunk_from_row(row),
        similarity=float(similarity) if similarity is not None else None,
    )


def scored_chunk_to_payload(scored: ScoredChunk) -> Dict[str, Any]:
    """Public JSON shape of a retrieved chunk."""
    return {
        "filename": scored.chunk.filename,
        "chunk_index": scored.chunk.chunk_index,
        "chunk_text": scored.chunk.chunk_text,
        "similarity": scored.similarity,
    }


# --- rag_settings -----------------------------------------------------------

def settings_from_rows(rows: List[Mapping[str, Any]]) -> Dict[str, str]:
    """Collapse ``rag_settings`` key/value rows into a dict."""
    settings: Dict[str, str] = {}
    for row in rows:
        key = _require(row, "key", "rag_settings")
        value = row.get("value")
        if isinstance(value, str) and value.strip():
            settings[key] = value
    return settings


# --- verification_codes -----------------------------------------------------

@dataclass(frozen=True)
class VerificationCode:
    """A one-time sign-in code issued to an email address."""
    email: str
    code: str
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def to_row(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "code": self.code,
            "expires_at": self.expires_at.isoformat(),
            "attempts": self.attempts,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "VerificationCode":
        return cls(
            email=_require(row, "email", "verification_codes"),
            code=str(_require(row, "code", "verification_codes")),
            expires_at=_parse_timestamp(_require(row, "expires_at", "verification_codes")),
            attempts=int(row.get("attempts") or 0),
        )


# --- weekly_metrics / session_metrics / biomarkers --------------------------

# Columns whose public JSON name is not a plain camelCase conversion
_API_NAMES = {
    "resting_heart_rate": "restingHeartRate",
    "max_hr": "maxHR",
    "avg_hr": "avgHR",
    "session_type": "sessionType",
}


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # timestamptz columns come back as full ISO timestamps
    return date.fromisoformat(str(value)[:10])


def metric_changes_to_row(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Serialize a partial update so dates and timestamps survive JSON."""
    row: Dict[str, Any] = {}
    for column, value in changes.items():
        row[column] = value.isoformat() if isinstance(value, (date, datetime)) else value
    return row


@dataclass(frozen=True)
class MetricRecord:
    """
    A dated dashboard entry owned by one user.

    Subclasses add their measurement columns; ``TABLE`` names the Supabase
    table and ``LABEL`` is used in "not found" messages.
    """
    TABLE: ClassVar[str] = ""
    LABEL: ClassVar[str] = "Metric"

    user_id: str
    date: date
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def measurements(cls) -> Tuple[str, ...]:
        base = {f.name for f in fields(MetricRecord)}
        return tuple(f.name for f in fields(cls) if f.name not in base)

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {"user_id": self.user_id, "date": self.date.isoformat()}
        for name in self.measurements():
            row[name] = getattr(self, name)
        if self.id is not None:
            row["id"] = self.id
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MetricRecord":
        created_at = row.get("created_at")
        updated_at = row.get("updated_at")
        return cls(
            id=str(_require(row, "id", cls.TABLE)),
            user_id=_require(row, "user_id", cls.TABLE),
            date=_parse_date(_require(row, "date", cls.TABLE)),
            created_at=_parse_timestamp(created_at) if created_at else None,
            updated_at=_parse_timestamp(updated_at) if updated_at else None,
            **{name: row.get(name) for name in cls.measurements()},
        )

    def to_payload(self) -> Dict[str, Any]:
        """Public JSON shape: camelCase keys, unset measurements omitted."""
        payload: Dict[str, Any] = {"id": self.id, "date": self.date.isoformat()}
        for name in self.measurements():
            value = getattr(self, name)
            if value is not None:
                payload[_API_NAMES.get(name, name)] = value
        if self.created_at is not None:
            payload["createdAt"] = self.created_at.isoformat()
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at.isoformat()
        return payload


@dataclass(frozen=True)
class WeeklyMetric(MetricRecord):
    TABLE: ClassVar[str] = "weekly_metrics"

    resting_heart_rate: Optional[float] = None
    vo2max: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class SessionMetric(MetricRecord):
    TABLE: ClassVar[str] = "session_metrics"

    max_hr: Optional[float] = None
    avg_hr: Optional[float] = None
    session_type: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Biomarker(MetricRecord):
    TABLE: ClassVar[str] = "biomarkers"
    LABEL: ClassVar[str] = "Biomarker"

    hemoglobin: Optional[float] = None
    ferritin: Optional[float] = None
    crp: Optional[float] = None
    glucose: Optional[float] = None
