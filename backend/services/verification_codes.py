"""Short-lived email verification codes with expiry and attempt limits."""
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from supabase import Client

from config import (
    VERIFICATION_CODE_TTL_SECONDS,
    VERIFICATION_CODES_TABLE,
    VERIFICATION_MAX_ATTEMPTS,
    VERIFICATION_STORE_BACKEND,
)
from models.records import VerificationCode
from services.errors import ConfigurationError, UpstreamError
from services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)

CodeSender = Callable[[str, str], None]

MSG_NOT_FOUND = "No verification code found. Please request a new one."
MSG_EXPIRED = "Verification code has expired. Please request a new one."
MSG_TOO_MANY = "Too many failed attempts. Please request a new code."
MSG_SUCCESS = "Verification successful!"
MSG_INVALID = "Invalid verification code. Please try again."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationStoreError(UpstreamError):
    code = "VERIFICATION_STORE_ERROR"
    default_message = "Verification code store error"


class VerificationCodeStore(ABC):
    """Keeps at most one outstanding code per email address."""

    @abstractmethod
    def save(self, record: VerificationCode) -> None:
        """Store ``record``, replacing any code already issued to the email."""

    @abstractmethod
    def get(self, email: str) -> Optional[VerificationCode]:
        """Return the outstanding code for ``email``, if any."""

    @abstractmethod
    def delete(self, email: str) -> None:
        """Forget the code issued to ``email``."""

    @abstractmethod
    def increment_attempts(self, record: VerificationCode) -> bool:
        """
        Record one more attempt against ``record``.

        The increment only applies if the stored attempt count still equals
        ``record.attempts``.

        Returns:
            True if this caller won the increment
        """


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """Process-local store for development and tests."""

    def __init__(self):
        self._codes: Dict[str, VerificationCode] = {}
        self._lock = threading.Lock()

    def save(self, record: VerificationCode) -> None:
        with self._lock:
            self._codes[record.email] = record

    def get(self, email: str) -> Optional[VerificationCode]:
        with self._lock:
            return self._codes.get(email)

    def delete(self, email: str) -> None:
        with self._lock:
            self._codes.pop(email, None)

    def increment_attempts(self, record: VerificationCode) -> bool:
        with self._lock:
            current = self._codes.get(record.email)
            if current is None or current.attempts != record.attempts:
                return False
            self._codes[record.email] = replace(current, attempts=current.attempts + 1)
            return True


class SupabaseVerificationCodeStore(VerificationCodeStore):
    """
    Codes shared across server instances in the ``verification_codes`` table.

    Expected schema:

        CREATE TABLE verification_codes (
          email text PRIMARY KEY,
          code text NOT NULL,
          expires_at timestamptz NOT NULL,
          attempts int NOT NULL DEFAULT 0
        );
    """

    def __init__(self, client: Optional[Client] = None, table_name: str = VERIFICATION_CODES_TABLE):
        self.client = client or create_supabase_client()
        self.table_name = table_name

    def _table(self):
        return self.client.table(self.table_name)

    def save(self, record: VerificationCode) -> None:
        try:
            self._table().upsert(record.to_row(), on_conflict="email").execute()
        except Exception as e:
            raise self._wrap("Failed to store verification code", e)

    def get(self, email: str) -> Optional[VerificationCode]:
        try:
            response = self._table().select("*").eq("email", email).limit(1).execute()
        except Exception as e:
            raise self._wrap("Failed to read verification code", e)
        rows = response.data or []
        return VerificationCode.from_row(rows[0]) if rows else None

    def delete(self, email: str) -> None:
        try:
            self._table().delete().eq("email", email).execute()
        except Exception as e:
            raise self._wrap("Failed to delete verification code", e)

    def increment_attempts(self, record: VerificationCode) -> bool:
        try:
            response = (
                self._table()
                .update({"attempts": record.attempts + 1})
                .eq("email", record.email)
                .eq("attempts", record.attempts)
                .execute()
            )
        except Exception as e:
            raise self._wrap("Failed to record verification attempt", e)
        return bool(response.data)

    @staticmethod
    def _wrap(context: str, error: Exception) -> VerificationStoreError:
        message = getattr(error, "message", None) or str(error) or None
        logger.error(f"{context}: {message}")
        return VerificationStoreError(message)


def log_code_sender(email: str, code: str) -> None:
    """Default delivery: record that a code was issued without sending it anywhere."""
    logger.info("Verification code issued", extra={"email": email})
    logger.debug(f"Verification code for {email}: {code}")


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    message: str


class VerificationCodeService:
    """Issues and checks 4-digit sign-in codes."""

    def __init__(
        self,
        store: VerificationCodeStore,
        sender: CodeSender = log_code_sender,
        ttl_seconds: int = VERIFICATION_CODE_TTL_SECONDS,
        max_attempts: int = VERIFICATION_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.sender = sender
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.clock = clock

    @staticmethod
    def generate_code() -> str:
        return str(1000 + secrets.randbelow(9000))

    def create_code(self, email: str) -> VerificationCode:
        """
        Issue a fresh code for ``email``, replacing any outstanding one.

        Args:
            email: Address the code is issued to

        Returns:
            The stored VerificationCode
        """
        record = VerificationCode(
            email=email,
            code=self.generate_code(),
            expires_at=self.clock() + timedelta(seconds=self.ttl_seconds),
            attempts=0,
        )
        self.store.save(record)
        self.sender(email, record.code)
        return record

    def verify_code(self, email: str, code: str) -> VerificationResult:
        """
        Check a submitted code.

        Expired codes and codes that have used up their attempts are deleted.
        A successful match consumes the code. When two checks race on the same
        code, only the one that records its attempt first is evaluated; the
        other is rejected as invalid.

        Args:
            email: Address the code was issued to
            code: Submitted code

        Returns:
            VerificationResult with the user-facing message
        """
        stored = self.store.get(email)
        if stored is None:
            return VerificationResult(False, MSG_NOT_FOUND)

        if stored.is_expired(self.clock()):
            self.store.delete(email)
            return VerificationResult(False, MSG_EXPIRED)

        if stored.attempts >= self.max_attempts:
            self.store.delete(email)
            return VerificationResult(False, MSG_TOO_MANY)

        if not self.store.increment_attempts(stored):
            logger.warning("Concurrent verification attempt rejected", extra={"email": email})
            return VerificationResult(False, MSG_INVALID)

        if secrets.compare_digest(stored.code.encode(), str(code).encode()):
            self.store.delete(email)
            logger.info("Verification code accepted", extra={"email": email})
            return VerificationResult(True, MSG_SUCCESS)

        return VerificationResult(False, MSG_INVALID)

    def remaining_seconds(self, email: str) -> int:
        """Seconds until the outstanding code for ``email`` expires, 0 if none."""
        stored = self.store.get(email)
        if stored is None:
            return 0
        remaining = (stored.expires_at - self.clock()).total_seconds()
        return max(0, int(remaining))


def create_verification_store(
    backend: str = VERIFICATION_STORE_BACKEND, client: Optional[Client] = None
) -> VerificationCodeStore:
    """Build the code store named by ``backend`` ("supabase" or "memory")."""
    if backend == "memory":
        logger.warning("Using in-memory verification code store; codes are not shared")
        return InMemoryVerificationCodeStore()
    if backend == "supabase":
        return SupabaseVerificationCodeStore(client=client)
    raise ConfigurationError(f"Unknown VERIFICATION_STORE_BACKEND: {backend}")
