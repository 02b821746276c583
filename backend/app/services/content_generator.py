from openai import AsyncOpenAI
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timezone
from app.core.config import settings
from app.services.rate_limiter import TokenBucketRateLimiter, estimate_request_tokens
from slugify import slugify
import logging
import json
import math
import random

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
MAX_TITLE_LENGTH = 200
MAX_EXCERPT_LENGTH = 500
MAX_SLUG_LENGTH = 100
MAX_TAGS = 5

WRITER_SYSTEM_PROMPT = (
    "You are a professional finance and cryptocurrency content writer. "
    "Create high-quality, informative, and engaging content about the topics provided. "
    "Use an authoritative but accessible tone, include specific details, and make the "
    "content valuable to readers interested in finance and cryptocurrency. "
    "Format the output in markdown."
)
TITLE_SYSTEM_PROMPT = (
    "Generate a catchy, SEO-friendly title for this blog post. "
    "Keep it under 100 characters. Respond with the title only."
)
EXCERPT_SYSTEM_PROMPT = (
    "Create a compelling excerpt/summary for this blog post. "
    "Keep it under 200 characters."
)
TAGS_SYSTEM_PROMPT = (
    "Extract 3-5 relevant tags from this content. Respond with JSON in this "
    'format: { "tags": ["tag1", "tag2", "tag3"] }'
)

COVER_IMAGES = [
    "https://images.unsplash.com/photo-1621761191319-4a3f68df7e75?auto=format&fit=crop&w=1200&h=600&q=80",  # Crypto trading
    "https://images.unsplash.com/photo-1518544801976-5e22eb212d25?auto=format&fit=crop&w=1200&h=600&q=80",  # Bitcoin
    "https://images.unsplash.com/photo-1625643257258-71050e92f720?auto=format&fit=crop&w=1200&h=600&q=80",  # Finance
    "https://images.unsplash.com/photo-1580048915913-4f8f5cb481c4?auto=format&fit=crop&w=1200&h=600&q=80",  # Stock market
    "https://images.unsplash.com/photo-1605792657660-596af9009e82?auto=format&fit=crop&w=1200&h=600&q=80",  # Ethereum
]

# Shared across generator instances so concurrent cron calls share one budget
_shared_rate_limiter = None


def _get_shared_rate_limiter() -> TokenBucketRateLimiter:
    """Get or create the shared rate limiter instance."""
    global _shared_rate_limiter
    if _shared_rate_limiter is None:
        _shared_rate_limiter = TokenBucketRateLimiter(settings.LLM_TPM_LIMIT)
    return _shared_rate_limiter


class GeneratedPost(BaseModel):
    """Post content produced by the generation service."""

    title: str
    slug: str
    excerpt: str
    content: str
    cover_image: str
    reading_time: int
    tags: List[str]
    related_assets: List[str]
    published_at: datetime


def estimate_reading_time(content: str) -> int:
    """Minutes needed to read content at WORDS_PER_MINUTE, at least one."""
    word_count = len(content.split())
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def render_prompt(template: str, category_name: str, related_assets: List[str]) -> str:
    """Fill the {{category}} and {{assets}} placeholders of a prompt template."""
    return template.replace("{{category}}", category_name).replace(
        "{{assets}}", ", ".join(related_assets)
    )


def parse_tags(raw: Optional[str], fallback: str) -> List[str]:
    """Read the tag list from a JSON completion, falling back to [fallback]."""
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        logger.warning(f"Error parsing tags: {e}")
        return [fallback]

    tags = data.get("tags") if isinstance(data, dict) else None
    if not isinstance(tags, list):
        return [fallback]

    cleaned = [str(tag).strip() for tag in tags if str(tag).strip()]
    return cleaned[:MAX_TAGS] or [fallback]


class ContentGenerator:
    """
    Wraps the OpenAI chat API to turn a prompt into blog post content.

    The generator is "configured" only when an API key (or a prebuilt client)
    is supplied. An unconfigured generator returns None from generate_post so
    the rest of the system keeps working without credentials.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.rate_limiter = rate_limiter
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key)
        else:
            self.client = None

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def generate_post(
        self,
        prompt_template: str,
        category_name: str,
        related_assets: Optional[List[str]] = None,
    ) -> Optional[GeneratedPost]:
        """
        Generate a complete post from a prompt template.

        Args:
            prompt_template: Prompt with optional {{category}} and {{assets}} placeholders
            category_name: Name of the target category
            related_assets: Asset identifiers the post should cover (e.g. ["BTC"])

        Returns:
            GeneratedPost on success, None if the generator is not configured
            or any API call fails or returns unusable output.
        """
        if not self.is_configured:
            logger.warning("OpenAI client not configured. Cannot generate content.")
            return None

        assets = list(related_assets or [])
        prompt = render_prompt(prompt_template, category_name, assets)

        try:
            content = await self._complete(
                WRITER_SYSTEM_PROMPT, prompt, max_tokens=2500, temperature=0.7
            )
            if not content or not content.strip():
                raise ValueError("No content generated")

            raw_title = await self._complete(
                TITLE_SYSTEM_PROMPT, content, max_tokens=100, temperature=0.7
            )
            title = (raw_title or "").strip().strip('"').strip() or "Untitled Post"
            title = title[:MAX_TITLE_LENGTH]

            raw_excerpt = await self._complete(
                EXCERPT_SYSTEM_PROMPT, content, max_tokens=200, temperature=0.7
            )
            excerpt = (raw_excerpt or "").strip() or "No excerpt available"
            excerpt = excerpt[:MAX_EXCERPT_LENGTH]

            raw_tags = await self._complete(
                TAGS_SYSTEM_PROMPT,
                content,
                max_tokens=150,
                temperature=0.5,
                json_mode=True,
            )
            tags = parse_tags(raw_tags, category_name)

        except Exception as e:
            logger.error(f"Error generating blog post: {e}")
            return None

        slug = slugify(title, max_length=MAX_SLUG_LENGTH) or "post"

        return GeneratedPost(
            title=title,
            slug=slug,
            excerpt=excerpt,
            content=content,
            cover_image=random.choice(COVER_IMAGES),
            reading_time=estimate_reading_time(content),
            tags=tags,
            related_assets=assets,
            published_at=datetime.now(timezone.utc).replace(tzinfo=None),
        )

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Optional[str]:
        """Run one chat completion, paced by the rate limiter when present."""
        estimated_tokens = None
        if self.rate_limiter is not None:
            estimated_tokens = estimate_request_tokens(
                system_prompt, user_prompt, self.model, response_buffer=max_tokens
            )
            await self.rate_limiter.acquire(estimated_tokens)

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(f"LLM request: model={self.model} max_tokens={max_tokens}")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

        if self.rate_limiter is not None and getattr(response, "usage", None):
            total_tokens = getattr(response.usage, "total_tokens", None)
            if isinstance(total_tokens, int):
                self.rate_limiter.report_actual_usage(total_tokens, estimated_tokens)

        return response.choices[0].message.content


def get_content_generator() -> ContentGenerator:
    """FastAPI dependency providing the configured generation service."""
    return ContentGenerator(
        api_key=settings.OPENAI_API_KEY,
        model=settings.LLM_MODEL,
        rate_limiter=_get_shared_rate_limiter(),
    )
