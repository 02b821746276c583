"""Tokens-per-minute pacing for calls to the generation API."""

import asyncio
import time
import tiktoken
import logging

logger = logging.getLogger(__name__)

# Rough number of tokens added per chat message by the API framing
MESSAGE_OVERHEAD_TOKENS = 4


class TokenBucketRateLimiter:
    """
    Fixed one-minute window budget of LLM tokens.

    Each completion call reserves its estimated tokens up front; when the
    budget for the current window is spent, callers wait for the next one.
    """

    def __init__(self, tpm_limit: int, window_seconds: float = 60.0):
        self.tpm_limit = tpm_limit
        self.window_seconds = window_seconds
        self.tokens_used = 0
        self.window_start = time.monotonic()
        self.lock = asyncio.Lock()

    def _roll_window(self, now: float) -> float:
        elapsed = now - self.window_start
        if elapsed >= self.window_seconds:
            self.tokens_used = 0
            self.window_start = now
            return 0.0
        return elapsed

    async def acquire(self, estimated_tokens: int) -> None:
        """Block until estimated_tokens fit into the current window."""
        async with self.lock:
            elapsed = self._roll_window(time.monotonic())

            # A single request larger than the whole budget still runs alone
            if self.tokens_used and self.tokens_used + estimated_tokens > self.tpm_limit:
                wait = self.window_seconds - elapsed
                logger.info(
                    f"Generation budget {self.tokens_used}/{self.tpm_limit} tokens spent, "
                    f"waiting {wait:.1f}s"
                )
                await asyncio.sleep(wait)
                self.tokens_used = 0
                self.window_start = time.monotonic()

            self.tokens_used += estimated_tokens

    def report_actual_usage(self, actual_tokens: int, estimated_tokens: int) -> None:
        """Correct the reservation once the API reports real usage."""
        self.tokens_used = max(0, self.tokens_used + actual_tokens - estimated_tokens)


def estimate_tokens(text: str, model: str = "gpt-4o") -> int:
    """Count tokens in text with the model's tiktoken encoding."""
    try:
        encoding = tiktoken.encoding_for_model(model)
    except KeyError:
        encoding = tiktoken.get_encoding("cl100k_base")

    return len(encoding.encode(text))


def estimate_request_tokens(
    system_prompt: str,
    user_prompt: str,
    model: str = "gpt-4o",
    response_buffer: int = 500,
) -> int:
    """Estimate prompt plus response tokens for one chat completion."""
    prompt_tokens = estimate_tokens(system_prompt, model) + estimate_tokens(
        user_prompt, model
    )
    return prompt_tokens + 2 * MESSAGE_OVERHEAD_TOKENS + response_buffer
