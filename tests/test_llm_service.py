"""
Unit Tests for LLM Service

Tests message conversion, response parsing and retry behaviour of the
Gemini wrapper. The Gemini SDK is mocked; no API calls are made.
"""

import os
from types import SimpleNamespace

import pytest
from unittest.mock import Mock, patch

from ai.llm_service import (
    build_gemini_contents,
    call_llm_with_tools,
    retry_on_error,
    LLMConfigurationError,
    LLMResponseError,
)
from config import TOOL_DEFINITIONS


def _response(*parts, usage=None):
    candidate = SimpleNamespace(content=SimpleNamespace(parts=list(parts)))
    return SimpleNamespace(candidates=[candidate], usage_metadata=usage)


def _text_part(text):
    return SimpleNamespace(text=text, function_call=None)


def _call_part(name, args):
    return SimpleNamespace(text="", function_call=SimpleNamespace(name=name, args=args))


@pytest.fixture
def mock_genai():
    """Patch the Gemini SDK with a configured API key."""
    with patch("ai.llm_service.genai") as genai, \
            patch("ai.llm_service.GOOGLE_API_KEY", "test-key"), \
            patch("ai.llm_service._gemini_configured", False):
        yield genai


class TestBuildGeminiContents:
    """Test conversion of role/content turns."""

    def test_system_turn_becomes_instruction(self):
        """Test system turns are pulled out of the contents."""
        system, contents = build_gemini_contents([
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": "hi"},
        ])

        assert system == "You are helpful."
        assert contents == [{"role": "user", "parts": ["hi"]}]

    def test_assistant_maps_to_model(self):
        """Test assistant turns use Gemini's model role."""
        _, contents = build_gemini_contents([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ])

        assert [c["role"] for c in contents] == ["user", "model"]

    def test_consecutive_tool_results_merged(self):
        """Test back-to-back user turns share one content."""
        _, contents = build_gemini_contents([
            {"role": "user", "content": "register me"},
            {"role": "assistant", "content": "[Calling list_courses({})]"},
            {"role": "user", "content": "Tool result for list_courses: ..."},
            {"role": "user", "content": "Tool result for register_student: ..."},
        ])

        assert len(contents) == 3
        assert contents[-1]["parts"] == [
            "Tool result for list_courses: ...",
            "Tool result for register_student: ...",
        ]

    def test_no_system_turn(self):
        """Test the instruction is None without system turns."""
        system, _ = build_gemini_contents([{"role": "user", "content": "hi"}])

        assert system is None


class TestCallLLMWithTools:
    """Test the function calling wrapper."""

    def test_text_response(self, mock_genai):
        """Test a plain text reply."""
        mock_genai.GenerativeModel.return_value.generate_content.return_value = _response(
            _text_part("Hello "), _text_part("there")
        )

        result = call_llm_with_tools([{"role": "user", "content": "hi"}], TOOL_DEFINITIONS)

        assert result["response_text"] == "Hello there"
        assert result["tool_calls"] == []
        mock_genai.configure.assert_called_once_with(api_key="test-key")

    def test_function_calls_parsed_in_order(self, mock_genai):
        """Test every function call part becomes an invocation, in order."""
        mock_genai.GenerativeModel.return_value.generate_content.return_value = _response(
            _call_part("list_courses", None),
            _call_part("register_student", {"name": "Alice", "email": "a@x.edu"}),
        )

        result = call_llm_with_tools([{"role": "user", "content": "hi"}], TOOL_DEFINITIONS)

        assert result["response_text"] is None
        assert result["tool_calls"] == [
            {"name": "list_courses", "args": {}},
            {"name": "register_student", "args": {"name": "Alice", "email": "a@x.edu"}},
        ]

    def test_model_built_with_tools_and_instruction(self, mock_genai):
        """Test tools and the system instruction reach the model."""
        mock_genai.GenerativeModel.return_value.generate_content.return_value = _response(
            _text_part("ok")
        )

        call_llm_with_tools(
            [{"role": "system", "content": "Be brief."}, {"role": "user", "content": "hi"}],
            TOOL_DEFINITIONS,
        )

        kwargs = mock_genai.GenerativeModel.call_args[1]
        assert kwargs["system_instruction"] == "Be brief."
        assert kwargs["tools"] == [{"function_declarations": TOOL_DEFINITIONS}]

    def test_no_candidates(self, mock_genai):
        """Test an empty candidate list raises without retrying."""
        generate = mock_genai.GenerativeModel.return_value.generate_content
        generate.return_value = SimpleNamespace(candidates=[], usage_metadata=None)

        with pytest.raises(LLMResponseError):
            call_llm_with_tools([{"role": "user", "content": "hi"}], TOOL_DEFINITIONS)

        assert generate.call_count == 1

    def test_missing_api_key(self):
        """Test a missing key fails on first use."""
        with patch("ai.llm_service.GOOGLE_API_KEY", ""), \
                patch("ai.llm_service._gemini_configured", False):
            with pytest.raises(LLMConfigurationError):
                call_llm_with_tools([{"role": "user", "content": "hi"}], TOOL_DEFINITIONS)


class TestRetryOnError:
    """Test the retry decorator."""

    @patch("ai.llm_service.time.sleep")
    def test_retries_transient_errors(self, mock_sleep):
        """Test rate limit errors are retried with exponential backoff."""
        func = Mock(side_effect=[Exception("429 rate limit"), Exception("503"), "ok"])
        func.__name__ = "func"

        assert retry_on_error(max_retries=3, delay=1.0)(func)() == "ok"
        assert func.call_count == 3
        assert [c[0][0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("ai.llm_service.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        """Test the last error is raised once retries run out."""
        func = Mock(side_effect=Exception("timeout"))
        func.__name__ = "func"

        with pytest.raises(Exception, match="timeout"):
            retry_on_error(max_retries=2, delay=0.1)(func)()

        assert func.call_count == 2

    @patch("ai.llm_service.time.sleep")
    def test_non_retryable_error(self, mock_sleep):
        """Test other errors are raised immediately."""
        func = Mock(side_effect=ValueError("bad request"))
        func.__name__ = "func"

        with pytest.raises(ValueError):
            retry_on_error(max_retries=3)(func)()

        assert func.call_count == 1
        mock_sleep.assert_not_called()


@pytest.mark.integration
@pytest.mark.skipif(not os.getenv("GOOGLE_API_KEY"), reason="GOOGLE_API_KEY not set")
class TestGeminiIntegration:
    """Calls the real Gemini API."""

    def test_list_courses_requested(self):
        """Test the model asks for the course list when asked what is offered."""
        from config import SYSTEM_PROMPT

        result = call_llm_with_tools(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": "Which courses can I take?"},
            ],
            TOOL_DEFINITIONS,
            temperature=0.0,
        )

        assert result["tool_calls"] or result["response_text"]
