"""Chat and embedding capability shared by the classifier, index and composer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from intent_router.errors import LanguageModelUnavailable
from intent_router.types import ChatMessage

logger = logging.getLogger(__name__)


class LanguageModelService:
    """Thin async facade over a LangChain chat model and embeddings.

    `chat` propagates backend errors to the caller (the composer normalizes
    them). `embed` never raises for backend problems: blank input, transport
    errors and timeouts all come back as an empty vector.
    """

    def __init__(self, *, chat_model: Any | None, embeddings: Embeddings) -> None:
        self.chat_model = chat_model
        self.embeddings = embeddings

    @property
    def chat_configured(self) -> bool:
        return self.chat_model is not None

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        *,
        timeout: float | None = None,
    ) -> str:
        if self.chat_model is None:
            raise LanguageModelUnavailable("No chat model configured.")

        lc_messages = [_to_langchain_message(message) for message in messages]
        if timeout is None:
            return await self._stream(lc_messages)
        return await asyncio.wait_for(self._stream(lc_messages), timeout=timeout)

    async def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        if not text or not text.strip():
            return []

        try:
            if timeout is None:
                vector = await self.embeddings.aembed_query(text)
            else:
                vector = await asyncio.wait_for(
                    self.embeddings.aembed_query(text), timeout=timeout
                )
        except asyncio.TimeoutError:
            logger.warning("Embedding request timed out after %.2fs", timeout)
            return []
        except Exception:
            logger.warning("Embedding request failed.", exc_info=True)
            return []
        return [float(value) for value in vector or []]

    async def _stream(self, messages: list[BaseMessage]) -> str:
        parts: list[str] = []
        async for chunk in self.chat_model.astream(messages):
            parts.append(_content_text(getattr(chunk, "content", chunk)))
        return "".join(parts)


def _to_langchain_message(message: ChatMessage) -> BaseMessage:
    if message.role.lower() == "system":
        return SystemMessage(content=message.content)
    return HumanMessage(content=message.content)


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                parts.append(str(item.get("text", "")))
            else:
                parts.append(str(item))
        return "".join(parts)
    return str(content)
