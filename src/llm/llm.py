"""
LLM factory and cache.

This module provides the chat model instantiation used for answer and refactor
generation. It serves as the single source of truth for LLM configuration.
"""

from __future__ import annotations

import logging

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from settings import (
    ANSWER_MODEL,
    GOOGLE_API_KEY,
    LLM_MAX_RETRIES,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT,
)

__all__ = ["create_llm_with_config", "get_cached_llm", "initialize_llm_cache"]

logger = logging.getLogger(__name__)

# Global cache for LLM instances to avoid recreation on every request
_LLM_CACHE: dict[str, BaseChatModel] = {}


def get_cached_llm(model: str = ANSWER_MODEL) -> BaseChatModel:
    """
    Get a cached LLM instance for a specific model.

    Args:
        model: Model name

    Returns:
        Cached LLM instance

    Raises:
        ValueError: If model is not in cache
    """
    if model not in _LLM_CACHE:
        raise ValueError(f"Model '{model}' not found in cache. Initialize LLM cache first.")

    return _LLM_CACHE[model]


def initialize_llm_cache(models: list[str] | None = None) -> None:
    """
    Pre-create and cache the model instances used by the service.
    Call this once during service start-up.

    Args:
        models: Model names to cache (defaults to ANSWER_MODEL)
    """
    logger.info("Initializing LLM cache...")

    for model in dict.fromkeys(models or [ANSWER_MODEL]):
        if model not in _LLM_CACHE:
            _LLM_CACHE[model] = create_llm_with_config(model=model)
            logger.info(f"Created and cached LLM: {model}")

    logger.info(f"LLM cache initialized with {len(_LLM_CACHE)} model instances")


def create_llm_with_config(
    model: str = ANSWER_MODEL,
    temperature: float = LLM_TEMPERATURE,
    max_tokens: int | None = LLM_MAX_TOKENS,
    timeout: int = LLM_TIMEOUT,
    max_retries: int = LLM_MAX_RETRIES,
) -> BaseChatModel:
    """
    Create a ChatGoogleGenerativeAI instance with specified configuration.

    Args:
        model: The model name (e.g., "gemini-2.0-flash")
        temperature: Temperature setting for randomness (0.0 to 1.0)
        max_tokens: Maximum output tokens (None for model default)
        timeout: Request timeout in seconds
        max_retries: Maximum retry attempts

    Returns:
        Configured ChatGoogleGenerativeAI instance

    Raises:
        RuntimeError: If the API key is missing or LLM initialization fails

    Example:
        >>> llm = create_llm_with_config(model="gemini-2.0-flash", temperature=0.1)
    """
    if not GOOGLE_API_KEY:
        raise RuntimeError("GOOGLE_API_KEY not found in environment variables")

    try:
        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=GOOGLE_API_KEY,
            temperature=temperature,
            max_output_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
        )
    except Exception as e:
        logger.error(f"Failed to create LLM instance: {e}")
        raise RuntimeError(f"Failed to initialize LLM: {e}") from e
