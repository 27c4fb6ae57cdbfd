"""
AI Infrastructure Module

This module provides the core LLM infrastructure for the enrollment assistant:
- Gemini API client with error handling and retry logic
- Function calling over a role/content conversation
- Langfuse observability integration

All LLM calls should go through this module to ensure consistent
observability, error handling, and configuration.
"""

from .llm_service import (
    # Main LLM function
    call_llm_with_tools,
    build_gemini_contents,

    # Errors
    LLMConfigurationError,
    LLMResponseError,

    # Observability
    traced,
    update_trace,
    flush_traces,
)

__all__ = [
    "call_llm_with_tools",
    "build_gemini_contents",
    "LLMConfigurationError",
    "LLMResponseError",
    "traced",
    "update_trace",
    "flush_traces",
]
