"""
Agent Orchestrator - Tool-Calling Loop

Turns one user utterance into a final reply:
1. Seed the turn sequence with the system instruction, recent history and
   the new utterance
2. Ask the model for either a final answer or a batch of tool invocations
3. Dispatch every invocation in order and append each result as a turn
4. Repeat until the model answers, its output is unusable, or the round
   budget runs out

The loop is a small state machine: AWAITING_MODEL -> DISPATCHING ->
AWAITING_MODEL ... -> DONE. Every path ends in DONE with a textual reply.
"""

import json
import logging
import time
from typing import List, Dict, Any, Optional, Callable
from dataclasses import dataclass, field
from enum import Enum

from ai import call_llm_with_tools, traced, update_trace
from config import (
    SYSTEM_PROMPT,
    TOOL_DEFINITIONS,
    TOOL_ERROR_PREFIX,
    MAX_TOOL_ROUNDS,
    HISTORY_WINDOW,
    MALFORMED_OUTPUT_FALLBACK,
    ROUND_LIMIT_FALLBACK,
)
from .session import SessionContext

logger = logging.getLogger(__name__)

ToolFunction = Callable[[Any], str]
ModelClient = Callable[[List[Dict[str, str]], List[Dict]], Dict[str, Any]]


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class AgentStatus(Enum):
    """States of the tool-calling loop."""
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING = "dispatching"
    DONE = "done"


class TurnKind(Enum):
    """What a turn in the working conversation represents."""
    INSTRUCTION = "instruction"
    USER = "user"
    ASSISTANT = "assistant"
    INVOCATION_SUMMARY = "invocation_summary"
    TOOL_RESULT = "tool_result"


class CompletionReason(Enum):
    """Why the loop reached DONE."""
    FINAL_ANSWER = "final_answer"
    MALFORMED_OUTPUT = "malformed_output"
    ROUND_LIMIT = "round_limit"


@dataclass
class ToolInvocation:
    """
    One operation the model asked to run.

    Attributes:
        name: Tool name as returned by the model
        arguments: Argument map as returned by the model (untrusted)
    """
    name: str
    arguments: Any = field(default_factory=dict)

    def describe(self) -> str:
        """Human-readable record of the call, e.g. ``[Calling list_courses({})]``."""
        return f"[Calling {self.name}({json.dumps(self.arguments, default=str)})]"


@dataclass
class Turn:
    """
    One entry in the working conversation sent to the model.

    Attributes:
        role: "system", "user" or "assistant"
        content: Text of the turn
        kind: What the turn represents
        tool_name: Tool that produced a TOOL_RESULT turn
        invocations: Structured record behind an INVOCATION_SUMMARY turn
    """
    role: str
    content: str
    kind: TurnKind
    tool_name: Optional[str] = None
    invocations: List[ToolInvocation] = field(default_factory=list)

    @classmethod
    def instruction(cls, content: str) -> "Turn":
        return cls(role="system", content=content, kind=TurnKind.INSTRUCTION)

    @classmethod
    def from_history(cls, message: Dict[str, str]) -> "Turn":
        role = "assistant" if message.get("role") == "assistant" else "user"
        kind = TurnKind.ASSISTANT if role == "assistant" else TurnKind.USER
        return cls(role=role, content=message.get("content", ""), kind=kind)

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role="user", content=content, kind=TurnKind.USER)

    @classmethod
    def invocation_summary(cls, invocations: List[ToolInvocation]) -> "Turn":
        return cls(
            role="assistant",
            content="\n".join(inv.describe() for inv in invocations),
            kind=TurnKind.INVOCATION_SUMMARY,
            invocations=list(invocations),
        )

    @classmethod
    def tool_result(cls, tool_name: str, result: str) -> "Turn":
        return cls(
            role="user",
            content=f"Tool result for {tool_name}: {result}",
            kind=TurnKind.TOOL_RESULT,
            tool_name=tool_name,
        )

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ToolResult:
    """
    Result from a tool execution.

    Attributes:
        tool_name: Name of the tool that was called
        arguments: Arguments the model supplied
        result: Outcome string fed back to the model
        success: False when the outcome reports a failed operation
        round: Round in which the tool ran (1-based)
        execution_time: Time taken to execute (seconds)
    """
    tool_name: str
    arguments: Any
    result: str
    success: bool
    round: int
    execution_time: float = 0.0


@dataclass
class AgentState:
    """
    Current state of the agent during execution.

    Tracks the working conversation, rounds, tool results and the outcome.
    """
    # Conversation
    user_message: str
    session: SessionContext
    conversation_history: List[Dict[str, str]] = field(default_factory=list)
    turns: List[Turn] = field(default_factory=list)

    # Execution tracking
    status: AgentStatus = AgentStatus.AWAITING_MODEL
    rounds: int = 0
    tool_results: List[ToolResult] = field(default_factory=list)

    # Results
    final_response: Optional[str] = None
    completion_reason: Optional[CompletionReason] = None

    # Metadata
    start_time: float = field(default_factory=time.time)
    total_execution_time: float = 0.0

    def add_tool_result(self, result: ToolResult):
        """Record a tool result and append its turn to the conversation."""
        self.tool_results.append(result)
        self.turns.append(Turn.tool_result(result.tool_name, result.result))

    def finish(self, response: str, reason: CompletionReason):
        """Move to DONE with the reply the caller will receive."""
        self.final_response = response
        self.completion_reason = reason
        self.status = AgentStatus.DONE
        self.total_execution_time = time.time() - self.start_time

    def get_execution_summary(self) -> Dict[str, Any]:
        """Get a summary of the execution."""
        return {
            "session_id": self.session.session_id,
            "status": self.status.value,
            "completion_reason": self.completion_reason.value if self.completion_reason else None,
            "rounds": self.rounds,
            "num_tool_calls": len(self.tool_results),
            "tools_used": [tr.tool_name for tr in self.tool_results],
            "had_errors": any(not tr.success for tr in self.tool_results),
            "execution_time": self.total_execution_time,
        }


# ============================================================================
# AGENT ORCHESTRATOR
# ============================================================================

class AgentOrchestrator:
    """
    Bounded tool-calling loop between the model and the tool registry.

    The orchestrator is not re-entrant for a conversation; callers run one
    message per session at a time.
    """

    def __init__(
        self,
        tool_registry: Dict[str, ToolFunction],
        model_client: Optional[ModelClient] = None,
        tool_definitions: Optional[List[Dict]] = None,
        system_prompt: str = SYSTEM_PROMPT,
        max_rounds: int = MAX_TOOL_ROUNDS,
        history_window: int = HISTORY_WINDOW,
    ):
        """
        Initialize the orchestrator.

        Args:
            tool_registry: Mapping of tool names to callables taking the argument map
            model_client: Callable(messages, tools) returning ``response_text``/``tool_calls``.
                Defaults to the Gemini client.
            tool_definitions: Schemas advertised to the model
            system_prompt: Fixed instruction turn that seeds every conversation
            max_rounds: Maximum model invocations per user message
            history_window: Persisted turns given to the model, new utterance included
        """
        self.tool_registry = tool_registry
        self.model_client = model_client or call_llm_with_tools
        self.tool_definitions = TOOL_DEFINITIONS if tool_definitions is None else tool_definitions
        self.system_prompt = system_prompt
        self.max_rounds = max_rounds
        self.history_window = history_window

    @traced("agent_loop")
    def run(
        self,
        user_message: str,
        session: SessionContext,
        conversation_history: Optional[List[Dict[str, str]]] = None,
    ) -> AgentState:
        """
        Execute the full loop for a user message.

        Store or model failures propagate to the caller; every other path
        finishes with a textual reply.

        Args:
            user_message: The user's input
            session: Context of the conversation this message belongs to
            conversation_history: Previous persisted turns, oldest first

        Returns:
            AgentState in DONE with ``final_response`` set
        """
        state = AgentState(
            user_message=user_message,
            session=session,
            conversation_history=conversation_history or [],
        )
        state.turns = self._build_turns(user_message, state.conversation_history)

        update_trace(session_id=session.session_id, input=user_message)

        while state.status is not AgentStatus.DONE:
            if state.rounds >= self.max_rounds:
                logger.warning(f"⚠️  Reached max tool rounds ({self.max_rounds}) without a final answer")
                state.finish(ROUND_LIMIT_FALLBACK, CompletionReason.ROUND_LIMIT)
                break

            state.rounds += 1
            logger.info(f"🤔 Round {state.rounds}/{self.max_rounds} (session: {session.session_id})")

            reply = self.model_client(
                [turn.to_message() for turn in state.turns],
                self.tool_definitions,
            )
            invocations = self._parse_invocations(reply)

            if invocations:
                state.status = AgentStatus.DISPATCHING
                self._dispatch(state, invocations)
                state.status = AgentStatus.AWAITING_MODEL
                continue

            text = self._parse_text(reply)
            if text:
                state.finish(text, CompletionReason.FINAL_ANSWER)
            else:
                logger.warning("⚠️  Model returned neither text nor tool calls")
                state.finish(MALFORMED_OUTPUT_FALLBACK, CompletionReason.MALFORMED_OUTPUT)

        logger.info(
            f"✅ Agent completed in {state.rounds} round(s), "
            f"{len(state.tool_results)} tool call(s): {state.completion_reason.value}"
        )
        return state

    def _build_turns(self, user_message: str, history: List[Dict[str, str]]) -> List[Turn]:
        """Instruction turn, then the bounded history window, then the new utterance."""
        window = max(self.history_window - 1, 0)
        recent = history[-window:] if window else []

        turns = [Turn.instruction(self.system_prompt)]
        turns.extend(Turn.from_history(message) for message in recent)
        turns.append(Turn.user(user_message))
        return turns

    @staticmethod
    def _parse_invocations(reply: Any) -> List[ToolInvocation]:
        if not isinstance(reply, dict):
            return []

        tool_calls = reply.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            return []

        invocations = []
        for call in tool_calls:
            if not isinstance(call, dict):
                continue
            arguments = call.get("args")
            if arguments is None:
                arguments = call.get("arguments", {})
            invocations.append(ToolInvocation(name=str(call.get("name") or ""), arguments=arguments))
        return invocations

    @staticmethod
    def _parse_text(reply: Any) -> Optional[str]:
        if not isinstance(reply, dict):
            return None
        text = reply.get("response_text")
        if isinstance(text, str) and text.strip():
            return text.strip()
        return None

    def _dispatch(self, state: AgentState, invocations: List[ToolInvocation]):
        """
        Run every invocation of a round in the order the model listed them.

        The invocation summary turn goes first, then one result turn per
        invocation in the same order.
        """
        state.turns.append(Turn.invocation_summary(invocations))

        for invocation in invocations:
            logger.info(f"🔧 Calling tool: {invocation.name} with args: {invocation.arguments}")
            tool_result = self._execute_tool(invocation, state.rounds)
            state.add_tool_result(tool_result)

            if not tool_result.success:
                logger.info(f"↩️  Tool {invocation.name} reported: {tool_result.result}")

    def _execute_tool(self, invocation: ToolInvocation, round_number: int) -> ToolResult:
        """
        Execute a specific tool with the given arguments.

        Args:
            invocation: The requested call
            round_number: Current round, for bookkeeping

        Returns:
            ToolResult with the outcome string
        """
        start_time = time.time()

        tool_func = self.tool_registry.get(invocation.name)
        if tool_func is None:
            result = f"{TOOL_ERROR_PREFIX} Unknown tool: {invocation.name or '(missing name)'}."
        else:
            result = tool_func(invocation.arguments)

        return ToolResult(
            tool_name=invocation.name,
            arguments=invocation.arguments,
            result=result,
            success=not result.startswith(TOOL_ERROR_PREFIX),
            round=round_number,
            execution_time=time.time() - start_time,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def run_agent_loop(
    user_message: str,
    tool_registry: Dict[str, ToolFunction],
    session: SessionContext,
    conversation_history: Optional[List[Dict[str, str]]] = None,
    model_client: Optional[ModelClient] = None,
    max_rounds: int = MAX_TOOL_ROUNDS,
) -> AgentState:
    """
    Convenience function to run the agent loop.

    Args:
        user_message: User's input message
        tool_registry: Dictionary of available tools
        session: Context of the conversation
        conversation_history: Previous persisted turns
        model_client: Model callable (defaults to Gemini)
        max_rounds: Max model invocations

    Returns:
        Final AgentState with results
    """
    orchestrator = AgentOrchestrator(
        tool_registry=tool_registry,
        model_client=model_client,
        max_rounds=max_rounds,
    )

    return orchestrator.run(
        user_message=user_message,
        session=session,
        conversation_history=conversation_history,
    )
