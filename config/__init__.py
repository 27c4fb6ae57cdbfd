"""
Configuration module for the enrollment assistant.

This module provides centralized configuration management including:
- Application settings (model, API keys, database URL, loop limits)
- The system prompt and tool definitions
- The seeded course catalog

All configurable values should be imported from this module to ensure
consistency across the application.
"""

from .settings import (
    # Paths
    BASE_DIR,
    DATA_DIR,

    # API Keys
    GOOGLE_API_KEY,

    # LLM Settings
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    MAX_RETRIES,
    RETRY_DELAY,
    TIMEOUT,

    # Langfuse Settings
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,

    # Database
    DATABASE_URL,
    DATABASE_ECHO,

    # Orchestrator Settings
    MAX_TOOL_ROUNDS,
    HISTORY_WINDOW,
    MALFORMED_OUTPUT_FALLBACK,
    ROUND_LIMIT_FALLBACK,
    SERVICE_ERROR_MESSAGE,

    # Catalog
    SEED_COURSES,

    # Logging
    LOG_LEVEL,
    configure_logging,
)

from .prompts import (
    SYSTEM_PROMPT,
    TOOL_DEFINITIONS,
    TOOL_ERROR_PREFIX,
    get_tool_by_name,
    get_required_arguments,
)

__all__ = [
    # Settings
    "BASE_DIR",
    "DATA_DIR",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "TEMPERATURE",
    "MAX_TOKENS",
    "TOP_P",
    "TOP_K",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "TIMEOUT",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "LANGFUSE_ENABLED",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "MAX_TOOL_ROUNDS",
    "HISTORY_WINDOW",
    "MALFORMED_OUTPUT_FALLBACK",
    "ROUND_LIMIT_FALLBACK",
    "SERVICE_ERROR_MESSAGE",
    "SEED_COURSES",
    "LOG_LEVEL",
    "configure_logging",

    # Prompts
    "SYSTEM_PROMPT",
    "TOOL_DEFINITIONS",
    "TOOL_ERROR_PREFIX",
    "get_tool_by_name",
    "get_required_arguments",
]
