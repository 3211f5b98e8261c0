"""Answer synthesis over retrieved context with bounded retries."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from askdocs.core.config import Settings
from askdocs.core.errors import RateLimitedError, ServiceResponseError, SynthesisError
from askdocs.core.logging import ctx, get_logger
from askdocs.core.metrics import SYNTHESIS_ATTEMPTS
from askdocs.llm.service import ModelService
from askdocs.models.entities import ChatTurn, RetrievalResult

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

SYSTEM_PROMPT = (
    "You are a helpful AI assistant that answers questions based on the provided context. "
    "Use the following context to answer the user's question. If the context doesn't contain "
    "enough information to fully answer the question, say so and provide what information you can."
    "\n\nContext:\n{context}"
)


@dataclass(slots=True)
class SynthesisConfig:
    max_tokens: int = 1024
    temperature: float = 0.1
    top_p: float = 0.9
    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_cap: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SynthesisConfig":
        return cls(
            max_tokens=settings.chat_max_tokens,
            temperature=settings.chat_temperature,
            top_p=settings.chat_top_p,
            max_attempts=settings.synthesis_max_attempts,
            backoff_base=settings.synthesis_backoff_base,
            backoff_cap=settings.synthesis_backoff_cap,
        )


def build_turns(query: str, context: Sequence[RetrievalResult]) -> list[ChatTurn]:
    """System turn carrying the joined context, then the raw user query."""
    joined = "\n\n".join(item.text for item in context)
    return [
        ChatTurn(role="system", content=SYSTEM_PROMPT.format(context=joined)),
        ChatTurn(role="user", content=query),
    ]


class AnswerSynthesizer:
    """Prompts the chat model with retrieved chunks.

    Rate-limited and transient failures share one attempt budget. Rate limits
    back off exponentially (``base * 2**attempt``, capped); transient errors
    back off linearly (``attempt * base``).
    """

    def __init__(self, service: ModelService, config: SynthesisConfig, sleep: Sleep = asyncio.sleep) -> None:
        self.service = service
        self.config = config
        self._sleep = sleep

    async def synthesize(self, query: str, context: Sequence[RetrievalResult]) -> str:
        messages = [turn.as_message() for turn in build_turns(query, context)]
        params = {
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
        }
        max_attempts = self.config.max_attempts
        attempt = 0
        last_error: Exception | None = None

        while attempt < max_attempts:
            try:
                answer = await self.service.complete(messages, **params)
            except RateLimitedError as exc:
                last_error = exc
                delay = min(self.config.backoff_base * (2**attempt), self.config.backoff_cap)
                attempt += 1
                SYNTHESIS_ATTEMPTS.labels(result="rate_limited").inc()
                if attempt >= max_attempts:
                    break
                logger.warning("Rate limited, retrying", extra=ctx(attempt=attempt, delay=delay))
                await self._sleep(delay)
                continue
            except ServiceResponseError as exc:
                last_error = exc
                attempt += 1
                SYNTHESIS_ATTEMPTS.labels(result="error").inc()
                if not exc.is_transient:
                    raise SynthesisError(f"Chat completion rejected: {exc}") from exc
                if attempt >= max_attempts:
                    break
                delay = attempt * self.config.backoff_base
                logger.warning(
                    "Chat completion failed, retrying",
                    extra=ctx(attempt=attempt, delay=delay, error=str(exc)),
                )
                await self._sleep(delay)
                continue

            if not isinstance(answer, str):
                SYNTHESIS_ATTEMPTS.labels(result="error").inc()
                raise SynthesisError("Chat completion returned no text")
            SYNTHESIS_ATTEMPTS.labels(result="ok").inc()
            return answer

        logger.error(
            "Failed to generate chat response after retries",
            extra=ctx(attempts=max_attempts, error=str(last_error)),
        )
        raise SynthesisError(f"Failed to generate response after {max_attempts} attempts") from last_error


__all__ = ["AnswerSynthesizer", "SynthesisConfig", "build_turns", "SYSTEM_PROMPT"]
