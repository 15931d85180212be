"""
Client for the hosted chat-completion gateway (OpenAI-compatible API)
"""

from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from axent.config import settings
from axent.errors import UpstreamError, RateLimitedError, QuotaExceededError
from axent.utils.logger import get_logger

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Maaf, terlalu banyak permintaan. Silakan tunggu sebentar dan coba lagi."
QUOTA_EXCEEDED_MESSAGE = "Maaf, kredit AI habis. Silakan tambahkan kredit di workspace settings."


def strip_emphasis(text: str) -> str:
    """Drop markdown emphasis asterisks; the dashboard renders plain text"""
    return text.replace("*", "")


class AIGateway:
    """Sends chat requests and maps provider status codes to domain errors"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model or settings.AI_MODEL
        self.client = AsyncOpenAI(
            api_key=api_key or settings.AI_GATEWAY_API_KEY or "not-configured",
            base_url=base_url or settings.AI_GATEWAY_URL,
            max_retries=0,
            timeout=60.0,
            http_client=http_client,
        )
        self.configured = bool(api_key or settings.AI_GATEWAY_API_KEY)

    async def chat(self, messages: List[Dict[str, Any]], **options) -> Any:
        """Return the first choice's message object"""
        if not self.configured:
            logger.error("AI_GATEWAY_API_KEY is not configured")
            raise UpstreamError("AI service not configured")

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **options,
            )
        except openai.RateLimitError:
            logger.warning("AI gateway rate limit exceeded")
            raise RateLimitedError("Rate limit exceeded", RATE_LIMITED_MESSAGE)
        except openai.APIStatusError as e:
            if e.status_code == 402:
                logger.warning("AI gateway credits exhausted")
                raise QuotaExceededError("Payment required", QUOTA_EXCEEDED_MESSAGE)
            logger.error(f"AI gateway error: {e.status_code} {e.message}")
            raise UpstreamError(f"AI gateway error: {e.status_code}")
        except openai.APIError as e:
            logger.error(f"AI gateway unreachable: {e}")
            raise UpstreamError("AI gateway unavailable")

        if not completion.choices:
            return None
        return completion.choices[0].message

    async def complete_text(self, messages: List[Dict[str, Any]], **options) -> Optional[str]:
        message = await self.chat(messages, **options)
        if message is None:
            return None
        return message.content


ai_gateway = AIGateway()


def get_ai_gateway() -> AIGateway:
    return ai_gateway
