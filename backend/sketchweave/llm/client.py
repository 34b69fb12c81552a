"""Text-generation collaborator: a small protocol plus the LangChain ChatAnthropic implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sketchweave.config import settings
from sketchweave.errors import LLMNotConfiguredError, TransportFailure
from sketchweave.llm.model_router import get_model_for_task

logger = logging.getLogger(__name__)


@dataclass
class Usage:
    input_units: int = 0
    output_units: int = 0


@dataclass
class GenerationResponse:
    content: str
    usage: Usage | None = None


class TextGenerator(Protocol):
    """Ordered role/content messages in, one completion out. May raise."""

    async def generate(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
    ) -> GenerationResponse:
        ...


def _content_text(content: Any) -> str:
    # Anthropic responses can come back as a list of content blocks
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class AnthropicTextGenerator:
    def __init__(
        self,
        task: str = "generate",
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self.model = get_model_for_task(task)
        self.api_key = settings.anthropic_api_key if api_key is None else api_key
        self.max_tokens = max_tokens or settings.max_tokens
        self.temperature = settings.temperature if temperature is None else temperature

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
    ) -> GenerationResponse:
        if not self.api_key:
            raise LLMNotConfiguredError("LLM not configured: set ANTHROPIC_API_KEY in .env")

        from langchain_anthropic import ChatAnthropic
        from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

        llm = ChatAnthropic(
            model=self.model,
            api_key=self.api_key,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        lc_messages: list = []
        if system:
            lc_messages.append(SystemMessage(content=system))
        for msg in messages:
            if msg.get("role") == "user":
                lc_messages.append(HumanMessage(content=msg["content"]))
            elif msg.get("role") == "assistant":
                lc_messages.append(AIMessage(content=msg["content"]))

        try:
            response = await llm.ainvoke(lc_messages)
        except Exception as e:
            logger.warning("Text generation call failed: %s", e)
            raise TransportFailure(str(e)) from e

        usage_meta = getattr(response, "usage_metadata", None) or {}
        return GenerationResponse(
            content=_content_text(response.content),
            usage=Usage(
                input_units=usage_meta.get("input_tokens", 0),
                output_units=usage_meta.get("output_tokens", 0),
            ),
        )


def get_text_generator(task: str = "generate") -> AnthropicTextGenerator:
    return AnthropicTextGenerator(task=task)
