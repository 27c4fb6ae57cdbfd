"""
Core Agent Logic Module

This module contains the brain of the enrollment assistant:
- Agent orchestration: the bounded tool-calling loop between the model and
  the enrollment tools
- Session context: per-conversation state passed explicitly into each run
"""

from .session import (
    SessionContext,
    SessionSnapshot,
)

from .orchestrator import (
    AgentOrchestrator,
    AgentState,
    AgentStatus,
    CompletionReason,
    ToolInvocation,
    ToolResult,
    Turn,
    TurnKind,
    run_agent_loop,
)

__all__ = [
    # Session
    "SessionContext",
    "SessionSnapshot",

    # Orchestrator
    "AgentOrchestrator",
    "AgentState",
    "AgentStatus",
    "CompletionReason",
    "ToolInvocation",
    "ToolResult",
    "Turn",
    "TurnKind",
    "run_agent_loop",
]
