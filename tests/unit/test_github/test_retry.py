"""
test_retry.py - 지수 백오프 재시도 테스트
"""

import pytest

from rainar.domain.errors import ErrorCodes, RemoteUnavailableError, ValidationError
from rainar.utils.retry import retry_with_exponential_backoff


class TestRetryWithExponentialBackoff:
    """retry_with_exponential_backoff 함수 테스트."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        attempts = []

        async def flaky(value):
            attempts.append(value)
            if len(attempts) < 3:
                raise RemoteUnavailableError(ErrorCodes.REMOTE_UNREACHABLE, "down")
            return value

        result = await retry_with_exponential_backoff(
            flaky, "ok", max_retries=3, initial_delay=0,
            exceptions=(RemoteUnavailableError,),
        )

        assert result == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_non_matching_exception_not_retried(self):
        attempts = []

        async def invalid():
            attempts.append(1)
            raise ValidationError(ErrorCodes.MISSING_FIELD, "bad")

        with pytest.raises(ValidationError):
            await retry_with_exponential_backoff(
                invalid, max_retries=3, initial_delay=0,
                exceptions=(RemoteUnavailableError,),
            )

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_raises_last_error(self):
        async def always_down():
            raise RemoteUnavailableError(ErrorCodes.REMOTE_UNREACHABLE, "down")

        with pytest.raises(RemoteUnavailableError):
            await retry_with_exponential_backoff(
                always_down, max_retries=2, initial_delay=0,
                exceptions=(RemoteUnavailableError,),
            )
