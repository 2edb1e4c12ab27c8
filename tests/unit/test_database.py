"""Tests for store error mapping and the retry helper."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from review_dashboard.core.database import execute_with_retry, handle_database_exception
from review_dashboard.core.exceptions import DatabaseError, TransientStoreError, ValidationError


class TestHandleDatabaseException:

    def test_operational_error_is_transient(self):
        mapped = handle_database_exception(
            OperationalError("SELECT 1", {}, Exception("server closed the connection")), "ping"
        )

        assert isinstance(mapped, TransientStoreError)
        assert mapped.status_code == 503
        assert mapped.details["operation"] == "ping"

    def test_integrity_error_is_not_transient(self):
        mapped = handle_database_exception(
            IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")), "insert"
        )

        assert isinstance(mapped, DatabaseError)
        assert not isinstance(mapped, TransientStoreError)

    def test_application_errors_pass_through(self):
        original = DatabaseError("already mapped")
        assert handle_database_exception(original) is original


class TestExecuteWithRetry:

    async def test_transient_failure_is_retried_until_success(self):
        attempts = []

        async def flaky(value):
            attempts.append(value)
            if len(attempts) < 3:
                raise TransientStoreError("connection reset")
            return value * 2

        assert await execute_with_retry(flaky, 21, max_retries=3, retry_delay=0) == 42
        assert attempts == [21, 21, 21]

    async def test_gives_up_after_max_retries(self):
        attempts = []

        async def down():
            attempts.append(1)
            raise TransientStoreError("connection refused", operation="upsert review")

        with pytest.raises(TransientStoreError) as exc_info:
            await execute_with_retry(down, max_retries=2, retry_delay=0)

        assert len(attempts) == 2
        assert exc_info.value.details["attempts"] == 2
        assert exc_info.value.details["operation"] == "upsert review"

    async def test_other_errors_are_not_retried(self):
        attempts = []

        async def invalid():
            attempts.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await execute_with_retry(invalid, max_retries=3, retry_delay=0)

        assert len(attempts) == 1
