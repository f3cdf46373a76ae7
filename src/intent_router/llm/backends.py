"""Factories for the LangChain chat and embedding backends."""

from __future__ import annotations

from typing import Any

from langchain_core.embeddings import Embeddings

from intent_router.config import BackendConfig
from intent_router.llm.embedder import HashingEmbeddings


def create_chat_model(config: BackendConfig) -> Any:
    """Return a chat model, or None when running offline."""

    if config.provider == "offline":
        return None

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=config.chat_model,
        temperature=config.temperature,
        api_key=config.api_key,
        base_url=config.base_url,
    )


def create_embeddings(config: BackendConfig) -> Embeddings:
    if config.provider == "offline":
        return HashingEmbeddings(dimension=config.embedding_dimension)

    from langchain_openai import OpenAIEmbeddings

    # OpenAI-compatible servers (Ollama, vLLM) expect raw strings, not token ids.
    return OpenAIEmbeddings(
        model=config.embedding_model,
        api_key=config.api_key,
        base_url=config.base_url,
        check_embedding_ctx_length=False,
    )
