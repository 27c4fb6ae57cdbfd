"""
LLM Service - Gemini API Wrapper with Langfuse Observability

This service provides the interface to Google's Gemini API used by the
orchestrator:
- Conversion of role/content turns into Gemini contents
- Function calling (tools) with parsed invocations
- Automatic retry logic with exponential backoff
- Langfuse tracing for all LLM calls (when enabled)
- Token usage tracking

All LLM interactions in the assistant should use this service.
"""

import time
import logging
from typing import Optional, Dict, List, Any, Tuple
from functools import wraps

import google.generativeai as genai
from google.generativeai.types import GenerationConfig, HarmCategory, HarmBlockThreshold
from langfuse import Langfuse
from langfuse.decorators import observe, langfuse_context

from config import (
    GOOGLE_API_KEY,
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    MAX_RETRIES,
    RETRY_DELAY,
    TIMEOUT,
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,
)

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class LLMConfigurationError(RuntimeError):
    """Raised when the Gemini client cannot be configured (e.g. missing API key)."""


class LLMResponseError(RuntimeError):
    """Raised when Gemini returns no usable candidate."""


# ============================================================================
# INITIALIZATION
# ============================================================================

_gemini_configured = False

# Initialize Langfuse client (if enabled)
_langfuse_client: Optional[Langfuse] = None

if LANGFUSE_ENABLED:
    try:
        _langfuse_client = Langfuse(
            public_key=LANGFUSE_PUBLIC_KEY,
            secret_key=LANGFUSE_SECRET_KEY,
            host=LANGFUSE_HOST,
        )
        logger.info("✅ Langfuse observability initialized")
    except Exception as e:
        logger.warning(f"⚠️  Langfuse initialization failed: {e}. Continuing without tracing.")
        _langfuse_client = None
else:
    logger.info("ℹ️  Langfuse observability disabled")


def _ensure_gemini_configured() -> None:
    """Configure the Gemini SDK once, on first use."""
    global _gemini_configured

    if _gemini_configured:
        return

    if not GOOGLE_API_KEY:
        raise LLMConfigurationError(
            "GOOGLE_API_KEY not found in environment variables. "
            "Please set it in your .env file."
        )

    genai.configure(api_key=GOOGLE_API_KEY)
    _gemini_configured = True


# ============================================================================
# TRACING
# ============================================================================

def traced(name: str):
    """
    Decorator applying Langfuse ``observe`` tracing when tracing is enabled.

    Usage:
        @traced("agent_loop")
        def run(...):
            ...
    """
    def decorator(func):
        if not _langfuse_client:
            return func  # No-op if Langfuse disabled
        return observe(name=name)(func)
    return decorator


def update_trace(**kwargs) -> None:
    """Attach session/user metadata to the current Langfuse trace (if tracing)."""
    if _langfuse_client:
        langfuse_context.update_current_trace(**kwargs)


def flush_traces() -> None:
    """Flush pending Langfuse events, typically at shutdown."""
    if _langfuse_client:
        _langfuse_client.flush()


# ============================================================================
# SAFETY SETTINGS
# ============================================================================

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


# ============================================================================
# GENERATION CONFIGURATION
# ============================================================================

def get_generation_config(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> GenerationConfig:
    """
    Create a generation configuration for Gemini API calls.

    Args:
        temperature: Sampling temperature (0.0 - 2.0). Defaults to config value.
        max_tokens: Maximum tokens to generate. Defaults to config value.

    Returns:
        GenerationConfig object
    """
    return GenerationConfig(
        temperature=TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or MAX_TOKENS,
        top_p=TOP_P,
        top_k=TOP_K,
    )


# ============================================================================
# RETRY DECORATOR
# ============================================================================

def retry_on_error(max_retries: int = MAX_RETRIES, delay: float = RETRY_DELAY):
    """
    Decorator to retry function calls on transient API errors.
    Implements exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        delay: Initial delay between retries (seconds)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            current_delay = delay

            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)

                except (LLMConfigurationError, LLMResponseError):
                    raise

                except Exception as e:
                    error_type = type(e).__name__
                    error_msg = str(e)

                    # Determine if error is retryable
                    retryable = any([
                        "rate limit" in error_msg.lower(),
                        "quota" in error_msg.lower(),
                        "timeout" in error_msg.lower(),
                        "deadline" in error_msg.lower(),
                        "503" in error_msg,
                        "429" in error_msg,
                        "500" in error_msg,
                    ])

                    if not retryable or attempt >= max_retries:
                        logger.error(f"❌ {func.__name__} failed: {error_type}: {error_msg}")
                        raise

                    logger.warning(
                        f"⚠️  {func.__name__} failed (attempt {attempt}/{max_retries}): "
                        f"{error_type}. Retrying in {current_delay}s..."
                    )

                    time.sleep(current_delay)
                    current_delay *= 2  # Exponential backoff

        return wrapper
    return decorator


# ============================================================================
# MESSAGE CONVERSION
# ============================================================================

_GEMINI_ROLES = {
    "user": "user",
    "assistant": "model",
    "model": "model",
}


def build_gemini_contents(messages: List[Dict[str, str]]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Split role/content turns into a system instruction and Gemini contents.

    System turns become the system instruction. Consecutive turns with the
    same Gemini role are merged into one content with several parts, since
    tool results follow each other as user turns.

    Args:
        messages: Ordered turns, each ``{"role": ..., "content": ...}``

    Returns:
        Tuple of (system_instruction or None, contents list)
    """
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []

    for message in messages:
        role = message.get("role", "user")
        content = message.get("content", "")

        if role == "system":
            system_parts.append(content)
            continue

        gemini_role = _GEMINI_ROLES.get(role, "user")
        if contents and contents[-1]["role"] == gemini_role:
            contents[-1]["parts"].append(content)
        else:
            contents.append({"role": gemini_role, "parts": [content]})

    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


# ============================================================================
# CORE LLM FUNCTIONS
# ============================================================================

@traced("call_llm_with_tools")
@retry_on_error()
def call_llm_with_tools(
    messages: List[Dict[str, str]],
    tools: List[Dict],
    temperature: Optional[float] = None,
    model_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Make an LLM call over a conversation with function calling (tools) enabled.

    Args:
        messages: Ordered conversation turns (system turns become the system instruction)
        tools: List of tool definitions (function declaration schemas)
        temperature: Sampling temperature
        model_name: Model to use
        metadata: Additional metadata for tracking

    Returns:
        Dict with:
            - response_text: The text response (None if the model sent no text)
            - tool_calls: List of ``{"name", "args"}`` requested by the LLM
            - raw_response: Full API response object
            - latency: Seconds spent waiting for the API

    Raises:
        LLMConfigurationError: If no API key is configured
        LLMResponseError: If Gemini returns no candidates
    """
    _ensure_gemini_configured()
    model_name = model_name or GEMINI_MODEL

    update_trace(
        name="llm_call_with_tools",
        metadata={
            "model": model_name,
            "num_tools": len(tools),
            "num_turns": len(messages),
            **(metadata or {})
        }
    )

    system_instruction, contents = build_gemini_contents(messages)

    # Create model with tools
    model = genai.GenerativeModel(
        model_name=model_name,
        generation_config=get_generation_config(temperature),
        safety_settings=SAFETY_SETTINGS,
        system_instruction=system_instruction,
        tools=[{"function_declarations": tools}],
    )

    # Generate response
    start_time = time.time()
    response = model.generate_content(contents, request_options={"timeout": TIMEOUT})
    latency = time.time() - start_time

    if not response.candidates:
        raise LLMResponseError("No response candidates returned from Gemini API")

    # Parse response
    result = {
        "response_text": None,
        "tool_calls": [],
        "raw_response": response,
        "latency": latency,
    }

    text_parts = []
    candidate = response.candidates[0]

    if candidate.content and candidate.content.parts:
        for part in candidate.content.parts:
            func_call = getattr(part, "function_call", None)
            if func_call and func_call.name:
                result["tool_calls"].append({
                    "name": func_call.name,
                    "args": dict(func_call.args) if func_call.args else {},
                })
            elif getattr(part, "text", None):
                text_parts.append(part.text)

    if text_parts:
        result["response_text"] = "".join(text_parts)

    # Track usage
    usage = getattr(response, "usage_metadata", None)
    if usage:
        if _langfuse_client:
            langfuse_context.update_current_observation(
                usage={
                    "input": usage.prompt_token_count,
                    "output": usage.candidates_token_count,
                    "total": usage.total_token_count,
                }
            )

        logger.debug(
            f"📊 Tokens: {usage.prompt_token_count} in, "
            f"{usage.candidates_token_count} out, "
            f"🔧 {len(result['tool_calls'])} functions, "
            f"⏱️  {latency:.2f}s"
        )

    return result
