"""Unit tests for verification code issuing and checking."""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import MagicMock, Mock
from models.records import VerificationCode
from services.errors import ConfigurationError
from services.verification_codes import (
    MSG_EXPIRED,
    MSG_INVALID,
    MSG_NOT_FOUND,
    MSG_SUCCESS,
    MSG_TOO_MANY,
    InMemoryVerificationCodeStore,
    SupabaseVerificationCodeStore,
    VerificationCodeService,
    VerificationStoreError,
    create_verification_store,
)

EMAIL = "runner@example.com"
START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryVerificationCodeStore()


@pytest.fixture
def sent():
    return []


@pytest.fixture
def service(store, clock, sent):
    return VerificationCodeService(
        store,
        sender=lambda email, code: sent.append((email, code)),
        ttl_seconds=600,
        max_attempts=3,
        clock=clock,
    )


class TestCreateCode:

    def test_four_digit_code(self, service):
        """Codes are four digits."""
        for _ in range(50):
            code = service.generate_code()
            assert len(code) == 4
            assert 1000 <= int(code) <= 9999

    def test_stores_and_sends(self, service, store, sent):
        """A new code is stored and sent."""
        record = service.create_code(EMAIL)

        assert store.get(EMAIL) == record
        assert record.attempts == 0
        assert record.expires_at == START + timedelta(seconds=600)
        assert sent == [(EMAIL, record.code)]

    def test_new_code_replaces_old(self, service, store):
        """A new code replaces the outstanding one."""
        service.create_code(EMAIL)
        second = service.create_code(EMAIL)

        assert store.get(EMAIL) == second


class TestVerifyCode:

    def test_success_consumes_code(self, service, store):
        """A correct code verifies once and is removed."""
        record = service.create_code(EMAIL)

        result = service.verify_code(EMAIL, record.code)

        assert result.valid is True
        assert result.message == MSG_SUCCESS
        assert store.get(EMAIL) is None
        assert service.verify_code(EMAIL, record.code).message == MSG_NOT_FOUND

    def test_not_found(self, service):
        """Verifying without a code fails."""
        result = service.verify_code(EMAIL, "1234")

        assert result.valid is False
        assert result.message == MSG_NOT_FOUND

    def test_wrong_code_counts_attempt(self, service, store):
        """A wrong code counts one attempt."""
        record = service.create_code(EMAIL)
        wrong = "0000" if record.code != "0000" else "0001"

        result = service.verify_code(EMAIL, wrong)

        assert result.valid is False
        assert result.message == MSG_INVALID
        assert store.get(EMAIL).attempts == 1

    def test_too_many_attempts(self, service, store):
        """After three wrong attempts the code is removed."""
        record = service.create_code(EMAIL)

        for _ in range(3):
            assert service.verify_code(EMAIL, "0000").message == MSG_INVALID

        result = service.verify_code(EMAIL, record.code)

        assert result.valid is False
        assert result.message == MSG_TOO_MANY
        assert store.get(EMAIL) is None

    def test_correct_code_on_last_attempt(self, service):
        """The right code still works on the last attempt."""
        record = service.create_code(EMAIL)
        service.verify_code(EMAIL, "0000")
        service.verify_code(EMAIL, "0000")

        assert service.verify_code(EMAIL, record.code).valid is True

    def test_expired(self, service, store, clock):
        """An expired code is removed and rejected."""
        record = service.create_code(EMAIL)
        clock.advance(600)

        result = service.verify_code(EMAIL, record.code)

        assert result.valid is False
        assert result.message == MSG_EXPIRED
        assert store.get(EMAIL) is None

    def test_lost_race_is_rejected(self, clock, sent):
        """Losing the attempt race rejects the code."""
        store = Mock()
        store.get.return_value = VerificationCode(EMAIL, "4321", START + timedelta(minutes=5))
        store.increment_attempts.return_value = False
        service = VerificationCodeService(store, sender=lambda *args: None, clock=clock)

        result = service.verify_code(EMAIL, "4321")

        assert result.valid is False
        assert result.message == MSG_INVALID
        store.delete.assert_not_called()


class TestRemainingSeconds:

    def test_counts_down(self, service, clock):
        """Remaining time counts down from the TTL."""
        service.create_code(EMAIL)
        clock.advance(90)

        assert service.remaining_seconds(EMAIL) == 510

    def test_zero_without_code(self, service):
        """Remaining time is zero without a code."""
        assert service.remaining_seconds(EMAIL) == 0


class TestInMemoryStore:

    def test_increment_is_compare_and_set(self, store):
        """Only one increment wins for a given attempt count."""
        record = VerificationCode(EMAIL, "1234", START)
        store.save(record)

        assert store.increment_attempts(record) is True
        assert store.increment_attempts(record) is False
        assert store.get(EMAIL).attempts == 1

    def test_increment_missing_record(self, store):
        """Incrementing a missing record fails."""
        assert store.increment_attempts(VerificationCode(EMAIL, "1234", START)) is False


class TestSupabaseStore:

    @pytest.fixture
    def mock_client(self):
        return MagicMock()

    def table(self, mock_client):
        return mock_client.table.return_value

    def test_save_upserts_by_email(self, mock_client):
        """Codes are upserted on email."""
        record = VerificationCode(EMAIL, "1234", START)

        SupabaseVerificationCodeStore(client=mock_client).save(record)

        mock_client.table.assert_called_with("verification_codes")
        self.table(mock_client).upsert.assert_called_once_with(record.to_row(), on_conflict="email")

    def test_get(self, mock_client):
        """A stored row maps to a VerificationCode."""
        query = self.table(mock_client).select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = Mock(data=[{
            "email": EMAIL,
            "code": "1234",
            "expires_at": "2025-03-01T12:10:00Z",
            "attempts": 2,
        }])

        record = SupabaseVerificationCodeStore(client=mock_client).get(EMAIL)

        assert record == VerificationCode(EMAIL, "1234", START + timedelta(minutes=10), 2)

    def test_get_missing(self, mock_client):
        """A missing row is None."""
        query = self.table(mock_client).select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = Mock(data=[])

        assert SupabaseVerificationCodeStore(client=mock_client).get(EMAIL) is None

    def test_increment_filters_on_current_attempts(self, mock_client):
        """The increment filters on the current attempt count."""
        update = self.table(mock_client).update
        update.return_value.eq.return_value.eq.return_value.execute.return_value = Mock(data=[{"email": EMAIL}])

        won = SupabaseVerificationCodeStore(client=mock_client).increment_attempts(
            VerificationCode(EMAIL, "1234", START, attempts=1)
        )

        assert won is True
        update.assert_called_once_with({"attempts": 2})
        update.return_value.eq.assert_called_once_with("email", EMAIL)
        update.return_value.eq.return_value.eq.assert_called_once_with("attempts", 1)

    def test_increment_lost(self, mock_client):
        """An increment matching no row reports a loss."""
        update = self.table(mock_client).update
        update.return_value.eq.return_value.eq.return_value.execute.return_value = Mock(data=[])

        assert SupabaseVerificationCodeStore(client=mock_client).increment_attempts(
            VerificationCode(EMAIL, "1234", START)
        ) is False

    def test_errors_wrapped(self, mock_client):
        """Client failures become VerificationStoreError."""
        self.table(mock_client).delete.return_value.eq.return_value.execute.side_effect = Exception("timeout")

        with pytest.raises(VerificationStoreError, match="timeout"):
            SupabaseVerificationCodeStore(client=mock_client).delete(EMAIL)


class TestFactory:

    def test_memory(self):
        """The memory backend builds an in-memory store."""
        assert isinstance(create_verification_store("memory"), InMemoryVerificationCodeStore)

    def test_supabase(self):
        """The Supabase backend builds a Supabase store."""
        store = create_verification_store("supabase", client=MagicMock())

        assert isinstance(store, SupabaseVerificationCodeStore)

    def test_unknown(self):
        """An unknown backend is a configuration error."""
        with pytest.raises(ConfigurationError):
            create_verification_store("redis")
