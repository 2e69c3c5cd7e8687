# prelab/llm_client.py
import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from prelab import config
from prelab.errors import CreditsExhaustedError, LLMRequestError
from prelab.json_recovery import safe_json_parse
from prelab.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

_PAYMENT_MARKERS = ("insufficient credits", "payment required")


def _is_payment_failure(status_code: int, parsed: Any, raw: str) -> bool:
    error = parsed.get("error") if isinstance(parsed, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    text = str(message or raw or "").lower()
    return status_code == 402 or any(marker in text for marker in _PAYMENT_MARKERS)


def _extract_content(parsed: Any) -> str:
    """Pull choices[0].message.content out of a chat-completions body, '' when absent."""
    try:
        content = parsed["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


class OpenRouterClient:
    """
    Chat-completions client for OpenRouter (any OpenAI-compatible endpoint works).
    Retryable statuses back off per the injected RetryPolicy; payment failures raise at once.
    """

    def __init__(
        self,
        api_key: str = config.OPENROUTER_API_KEY,
        model: str = config.OPENROUTER_MODEL,
        url: str = config.OPENROUTER_URL,
        referer: str = config.APP_BASE_URL,
        title: str = config.APP_TITLE,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.referer = referer
        self.title = title
        self.timeout = timeout
        self.policy = policy or RetryPolicy()
        self.transport = transport
        self.sleep = sleep

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    async def generate(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.4,
        *,
        max_retries: Optional[int] = None,
        max_tokens: int = 2048,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Send one chat request and return the assistant's text."""
        policy = self.policy if max_retries is None else self.policy.with_max_retries(max_retries)
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            payload["response_format"] = response_format

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            attempt = 0
            while True:
                try:
                    resp = await client.post(self.url, json=payload, headers=self._headers())
                except httpx.RequestError as exc:
                    raise LLMRequestError(f"OpenRouter request failed: {exc}") from exc

                raw = resp.text
                parsed = safe_json_parse(raw, {})

                if resp.is_success:
                    return _extract_content(parsed)

                if _is_payment_failure(resp.status_code, parsed, raw):
                    logger.error("OpenRouter refused request for payment reasons (status %s)", resp.status_code)
                    raise CreditsExhaustedError()

                if policy.should_retry(resp.status_code, attempt):
                    delay = policy.delay_for(attempt)
                    logger.warning(
                        "OpenRouter returned %s, retrying in %.1fs (attempt %d/%d)",
                        resp.status_code, delay, attempt + 1, policy.max_retries,
                    )
                    await self.sleep(delay)
                    attempt += 1
                    continue

                raise LLMRequestError(f"OpenRouter request failed ({resp.status_code}): {raw}", resp.status_code)


@lru_cache(maxsize=1)
def get_llm_client() -> OpenRouterClient:
    """Return the process-wide client built from environment configuration."""
    return OpenRouterClient()


async def ask_llm(
    messages: List[Dict[str, str]],
    temperature: float = 0.4,
    *,
    max_retries: Optional[int] = None,
    max_tokens: int = 2048,
    response_format: Optional[Dict[str, Any]] = None,
) -> str:
    return await get_llm_client().generate(
        messages,
        temperature,
        max_retries=max_retries,
        max_tokens=max_tokens,
        response_format=response_format,
    )
