"""Unit tests for the connection retry policy."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from herdview.compositor.client import CompositorError
from herdview.compositor.retry_policy import RetryOutcome, RetryPolicy


class TestGetDelay:

    def test_first_attempt_has_no_delay(self):
        assert RetryPolicy(jitter=0).get_delay(1) == 0.0

    def test_exponential_growth_is_capped(self):
        policy = RetryPolicy(base_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=0)

        assert [policy.get_delay(n) for n in range(2, 7)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_stays_in_range(self):
        policy = RetryPolicy(base_delay=1.0, jitter=0.1)

        for _ in range(50):
            assert 0.9 <= policy.get_delay(2) <= 1.1


class TestExecute:

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        operation = AsyncMock()

        result = await RetryPolicy().execute(operation)

        assert result.outcome is RetryOutcome.SUCCESS
        assert result.attempt_count == 1

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        operation = AsyncMock(side_effect=[CompositorError("refused"), CompositorError("refused"), None])
        on_retry = MagicMock()
        policy = RetryPolicy(max_attempts=3, base_delay=0.001, retry_on=(CompositorError,))

        result = await policy.execute(operation, on_retry=on_retry)

        assert result.success
        assert result.attempt_count == 3
        assert [c.args for c in on_retry.call_args_list] == [(2, "refused"), (3, "refused")]

    @pytest.mark.asyncio
    async def test_exhausted(self):
        operation = AsyncMock(side_effect=CompositorError("refused"))
        policy = RetryPolicy(max_attempts=2, base_delay=0.001, retry_on=(CompositorError,))

        result = await policy.execute(operation)

        assert result.outcome is RetryOutcome.EXHAUSTED
        assert result.final_error == "refused"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        operation = AsyncMock(side_effect=KeyError("bug"))
        policy = RetryPolicy(retry_on=(CompositorError,))

        with pytest.raises(KeyError):
            await policy.execute(operation)

    @pytest.mark.asyncio
    async def test_abort_between_attempts(self):
        policy = RetryPolicy(max_attempts=5, base_delay=0.001, retry_on=(CompositorError,))

        async def fail_and_abort():
            policy.abort()
            raise CompositorError("refused")

        result = await policy.execute(fail_and_abort)

        assert result.outcome is RetryOutcome.ABORTED
        assert result.attempt_count == 1
