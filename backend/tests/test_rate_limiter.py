"""Tests for the generation token budget."""

import pytest
from unittest.mock import patch, AsyncMock
from app.services.rate_limiter import TokenBucketRateLimiter, estimate_request_tokens


@pytest.mark.unit
class TestTokenBucketRateLimiter:
    @pytest.mark.asyncio
    async def test_acquire_within_budget_does_not_wait(self):
        limiter = TokenBucketRateLimiter(tpm_limit=1000)

        with patch("app.services.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.acquire(400)
            await limiter.acquire(500)

        sleep.assert_not_awaited()
        assert limiter.tokens_used == 900

    @pytest.mark.asyncio
    async def test_acquire_over_budget_waits_for_next_window(self):
        limiter = TokenBucketRateLimiter(tpm_limit=1000)

        with patch("app.services.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.acquire(800)
            await limiter.acquire(300)

        sleep.assert_awaited_once()
        assert limiter.tokens_used == 300

    @pytest.mark.asyncio
    async def test_oversized_first_request_runs_alone(self):
        limiter = TokenBucketRateLimiter(tpm_limit=100)

        with patch("app.services.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.acquire(500)

        sleep.assert_not_awaited()
        assert limiter.tokens_used == 500

    @pytest.mark.asyncio
    async def test_window_rolls_over(self):
        limiter = TokenBucketRateLimiter(tpm_limit=1000, window_seconds=60.0)
        await limiter.acquire(900)
        limiter.window_start -= 61

        with patch("app.services.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.acquire(900)

        sleep.assert_not_awaited()
        assert limiter.tokens_used == 900

    def test_report_actual_usage_adjusts_reservation(self):
        limiter = TokenBucketRateLimiter(tpm_limit=1000)
        limiter.tokens_used = 500

        limiter.report_actual_usage(actual_tokens=200, estimated_tokens=400)
        assert limiter.tokens_used == 300

        limiter.report_actual_usage(actual_tokens=0, estimated_tokens=1000)
        assert limiter.tokens_used == 0


@pytest.mark.unit
def test_estimate_request_tokens_adds_overhead_and_buffer():
    with patch("app.services.rate_limiter.estimate_tokens", side_effect=[10, 20]):
        assert estimate_request_tokens("system", "user", response_buffer=100) == 138
