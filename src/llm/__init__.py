"""LLM factory and workers.

This module provides LLM creation, caching, and text generation.

Author: Hay Hoffman
"""

from src.llm.llm import (
    create_llm_with_config,
    get_cached_llm,
    initialize_llm_cache,
)
from src.llm.workers import generate_text

__all__ = [
    "create_llm_with_config",
    "get_cached_llm",
    "initialize_llm_cache",
    "generate_text",
]
