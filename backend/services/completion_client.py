"""
Completion Client: wraps the OpenAI SDK to talk to an OpenAI-compatible
chat completions endpoint (DeepSeek by default).

One blocking call per question: no retries, no streaming. Every failure
is raised as CompletionError carrying the upstream status code and, when
the upstream sent one, its structured error (type, message, code).

Usage:
    client = CompletionClient(api_key=..., base_url="https://api.deepseek.com/v1")
    result = await client.complete(system_prompt, question, timeout=60)
    print(result.content)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError, APITimeoutError
from openai.types.chat import ChatCompletion

from errors import CompletionError
from logging_config import log_llm

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Successful completion."""

    content: str
    model: str
    duration_s: float
    usage: Dict[str, Any] = field(default_factory=dict)


def _upstream_error(body: Any) -> Dict[str, Optional[str]]:
    """Pull type/message/code out of an upstream error body."""
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict):
            code = inner.get("code")
            return {
                "type": inner.get("type"),
                "message": inner.get("message"),
                "code": str(code) if code is not None else None,
            }
        if isinstance(inner, str):
            return {"type": None, "message": inner, "code": None}
    if isinstance(body, str) and body.strip():
        return {"type": None, "message": body.strip()[:500], "code": None}
    return {"type": None, "message": None, "code": None}


def _answer_text(response: Any) -> Optional[str]:
    """First choice's message text, or None when there is nothing usable."""
    if not isinstance(response, ChatCompletion) or not response.choices:
        return None
    message = getattr(response.choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class CompletionClient:
    """Async chat-completions client for the configured model."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepseek.com/v1",
        model: str = "deepseek-chat",
        temperature: float = 0.3,
        max_tokens: int = 1500,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Bearer token for the completion API
            base_url: OpenAI-compatible base URL (ends in /v1)
            model: Model name sent with every request
            temperature: Default sampling temperature
            max_tokens: Default output token cap
            http_client: Optional httpx client (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._openai = AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            max_retries=0,
            http_client=http_client,
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        timeout: float = 60.0,
        options: Optional[Dict[str, Any]] = None,
    ) -> CompletionResult:
        """Send one system + user exchange and return the answer text.

        Args:
            system_prompt: Instructions plus document content
            user_prompt: The user's question (or the chunk prompt)
            timeout: Seconds before the call is abandoned
            options: Overrides for temperature / max_tokens (None drops the cap)

        Raises:
            CompletionError: upstream non-2xx, timeout, network failure or
                a response without answer content
        """
        options = options or {}
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": options.get("temperature", self.temperature),
        }
        max_tokens = options.get("max_tokens", self.max_tokens)
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        log_llm(logger, "start", model=self.model)
        start = time.perf_counter()
        try:
            response = await self._openai.chat.completions.create(timeout=timeout, **kwargs)
        except APIStatusError as e:
            upstream = _upstream_error(e.body)
            logger.warning(f"Completion API returned {e.status_code}: {upstream['message'] or e.message}")
            raise CompletionError(
                "El servicio de respuestas devolvió un error.",
                details=upstream["message"],
                status_code=e.status_code,
                upstream_type=upstream["type"],
                upstream_message=upstream["message"],
                upstream_code=upstream["code"],
            ) from e
        except APITimeoutError as e:
            logger.warning(f"Completion API timed out after {timeout:.0f}s")
            raise CompletionError(
                "El servicio de respuestas tardó demasiado en contestar.",
                details=f"timeout={timeout:.0f}s",
                error_type="timeout",
            ) from e
        except APIConnectionError as e:
            logger.warning(f"Completion API unreachable: {e}")
            raise CompletionError(
                "No se pudo conectar con el servicio de respuestas.",
                details=str(e),
                error_type="connection",
            ) from e
        except APIError as e:
            # 2xx body the SDK could not turn into a completion
            logger.warning(f"Completion API returned an unusable response: {e}")
            raise CompletionError(
                "El servicio de respuestas no devolvió contenido.",
                details=str(e),
                error_type="empty",
            ) from e

        duration = time.perf_counter() - start
        log_llm(logger, "end", model=self.model, duration=duration)

        content = _answer_text(response)
        if content is None:
            logger.warning(f"Completion API returned no answer text: {type(response).__name__}")
            raise CompletionError(
                "El servicio de respuestas no devolvió contenido.",
                error_type="empty",
            )

        usage = response.usage.model_dump() if getattr(response, "usage", None) else {}
        model = getattr(response, "model", None) or self.model
        return CompletionResult(content=content, model=model, duration_s=duration, usage=usage)

    async def aclose(self) -> None:
        await self._openai.close()


# Singleton instance
_completion_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Get completion client singleton built from runtime config."""
    global _completion_client
    if _completion_client is None:
        from config import runtime_config

        if not runtime_config.completion_api_key:
            logger.warning("DEEPSEEK_API_KEY is not set; completion calls will be rejected upstream")
        _completion_client = CompletionClient(
            api_key=runtime_config.completion_api_key,
            base_url=runtime_config.completion_base_url,
            model=runtime_config.completion_model,
            temperature=runtime_config.completion_temperature,
            max_tokens=runtime_config.completion_max_tokens,
        )
    return _completion_client


async def close_completion_client() -> None:
    """Close the shared client (call on shutdown)."""
    global _completion_client
    if _completion_client is not None:
        await _completion_client.aclose()
        _completion_client = None
