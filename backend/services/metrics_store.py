"""Per-user dashboard metrics: weekly check-ins, training sessions and biomarkers."""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Type

from supabase import Client

from config import METRICS_STORE_BACKEND
from models.records import (
    Biomarker,
    MetricRecord,
    RecordMappingError,
    SessionMetric,
    WeeklyMetric,
    metric_changes_to_row,
)
from services.errors import ConfigurationError, NotFoundError, UpstreamError
from services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MetricKind(str, Enum):
    WEEKLY = "weekly"
    SESSION = "session"
    BIOMARKERS = "biomarkers"


RECORD_TYPES: Dict[MetricKind, Type[MetricRecord]] = {
    MetricKind.WEEKLY: WeeklyMetric,
    MetricKind.SESSION: SessionMetric,
    MetricKind.BIOMARKERS: Biomarker,
}


class MetricsStoreError(UpstreamError):
    code = "METRICS_STORE_ERROR"
    default_message = "Metrics store error"


class MetricsStore(ABC):
    """
    CRUD over one metric table, always scoped to a single user.

    A record that exists but belongs to someone else is reported exactly like
    a missing one.
    """

    def __init__(self, record_type: Type[MetricRecord]):
        self.record_type = record_type

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[MetricRecord]:
        """Return the user's records, newest ``date`` first."""

    @abstractmethod
    def create(self, user_id: str, values: Mapping[str, Any]) -> MetricRecord:
        """Store a new record built from ``date`` plus measurement columns."""

    @abstractmethod
    def update(self, user_id: str, metric_id: str, changes: Mapping[str, Any]) -> MetricRecord:
        """
        Apply ``changes`` to one of the user's records.

        Only the given columns change. A ``None`` date is ignored since every
        record needs one.

        Raises:
            NotFoundError: If the user owns no record with this id
        """

    @abstractmethod
    def delete(self, user_id: str, metric_id: str) -> None:
        """
        Remove one of the user's records.

        Raises:
            NotFoundError: If the user owns no record with this id
        """

    def _clean_changes(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        allowed = set(self.record_type.measurements()) | {"date"}
        cleaned = {column: value for column, value in changes.items() if column in allowed}
        if cleaned.get("date", True) is None:
            del cleaned["date"]
        return cleaned

    def _build(self, user_id: str, values: Mapping[str, Any], **extra: Any) -> MetricRecord:
        measurements = {name: values.get(name) for name in self.record_type.measurements()}
        return self.record_type(user_id=user_id, date=values["date"], **measurements, **extra)

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.record_type.LABEL} not found")


class InMemoryMetricsStore(MetricsStore):
    """Process-local store for development and tests."""

    def __init__(self, record_type: Type[MetricRecord], clock: Callable[[], datetime] = _utcnow):
        super().__init__(record_type)
        self.clock = clock
        self._records: Dict[str, MetricRecord] = {}
        self._lock = threading.Lock()

    def list_for_user(self, user_id: str) -> List[MetricRecord]:
        with self._lock:
            records = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(records, key=lambda r: r.date, reverse=True)

    def create(self, user_id: str, values: Mapping[str, Any]) -> MetricRecord:
        now = self.clock()
        record = self._build(user_id, values, id=str(uuid.uuid4()), created_at=now, updated_at=now)
        with self._lock:
            self._records[record.id] = record
        return record

    def update(self, user_id: str, metric_id: str, changes: Mapping[str, Any]) -> MetricRecord:
        cleaned = self._clean_changes(changes)
        with self._lock:
            current = self._records.get(metric_id)
            if current is None or current.user_id != user_id:
                raise self._not_found()
            updated = replace(current, updated_at=self.clock(), **cleaned)
            self._records[metric_id] = updated
        return updated

    def delete(self, user_id: str, metric_id: str) -> None:
        with self._lock:
            current = self._records.get(metric_id)
            if current is None or current.user_id != user_id:
                raise self._not_found()
            del self._records[metric_id]


class SupabaseMetricsStore(MetricsStore):
    """
    Records in one of the ``weekly_metrics``, ``session_metrics`` or
    ``biomarkers`` tables.

    Expected schema (measurement columns vary per table):

        CREATE TABLE weekly_metrics (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          user_id text NOT NULL,
          date date NOT NULL,
          resting_heart_rate real,
          vo2max real,
          notes text,
          created_at timestamptz NOT NULL DEFAULT now(),
          updated_at timestamptz NOT NULL DEFAULT now()
        );
    """

    def __init__(
        self,
        record_type: Type[MetricRecord],
        client: Optional[Client] = None,
        table_name: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(record_type)
        self.client = client or create_supabase_client()
        self.table_name = table_name or record_type.TABLE
        self.clock = clock

    def _table(self):
        return self.client.table(self.table_name)

    def _records(self, rows: List[Mapping[str, Any]], context: str) -> List[MetricRecord]:
        try:
            return [self.record_type.from_row(row) for row in rows]
        except (RecordMappingError, TypeError, ValueError) as e:
            raise self._wrap(context, e)

    def list_for_user(self, user_id: str) -> List[MetricRecord]:
        try:
            response = self._table().select("*").eq("user_id", user_id).order("date", desc=True).execute()
        except Exception as e:
            raise self._wrap(f"Failed to list {self.table_name}", e)
        return self._records(response.data or [], f"Unexpected row in {self.table_name}")

    def create(self, user_id: str, values: Mapping[str, Any]) -> MetricRecord:
        row = self._build(user_id, values).to_row()
        try:
            response = self._table().insert(row).execute()
        except Exception as e:
            raise self._wrap(f"Failed to create {self.table_name} row", e)
        records = self._records(response.data or [], f"Unexpected row in {self.table_name}")
        if not records:
            raise MetricsStoreError(f"Insert into {self.table_name} returned no row")
        logger.info(f"Created {self.table_name} entry {records[0].id}")
        return records[0]

    def update(self, user_id: str, metric_id: str, changes: Mapping[str, Any]) -> MetricRecord:
        row = metric_changes_to_row(self._clean_changes(changes))
        row["updated_at"] = self.clock().isoformat()
        try:
            # Filtering on user_id as well keeps other users' rows untouched
            response = self._table().update(row).eq("id", metric_id).eq("user_id", user_id).execute()
        except Exception as e:
            raise self._wrap(f"Failed to update {self.table_name} row", e)
        records = self._records(response.data or [], f"Unexpected row in {self.table_name}")
        if not records:
            raise self._not_found()
        return records[0]

    def delete(self, user_id: str, metric_id: str) -> None:
        try:
            response = self._table().delete().eq("id", metric_id).eq("user_id", user_id).execute()
        except Exception as e:
            raise self._wrap(f"Failed to delete {self.table_name} row", e)
        if not response.data:
            raise self._not_found()
        logger.info(f"Deleted {self.table_name} entry {metric_id}")

    @staticmethod
    def _wrap(context: str, error: Exception) -> MetricsStoreError:
        message = getattr(error, "message", None) or str(error) or None
        logger.error(f"{context}: {message}")
        return MetricsStoreError(message)


def create_metrics_stores(
    backend: str = METRICS_STORE_BACKEND, client: Optional[Client] = None
) -> Dict[MetricKind, MetricsStore]:
    """Build one store per metric kind on the named backend ("supabase" or "memory")."""
    if backend == "memory":
        logger.warning("Using in-memory metrics store; dashboard data is not persisted")
        return {kind: InMemoryMetricsStore(record_type) for kind, record_type in RECORD_TYPES.items()}
    if backend == "supabase":
        client = client or create_supabase_client()
        return {
            kind: SupabaseMetricsStore(record_type, client=client)
            for kind, record_type in RECORD_TYPES.items()
        }
    raise ConfigurationError(f"Unknown METRICS_STORE_BACKEND: {backend}")
