"""
Application settings and configuration values.

This module centralizes all configuration values including:
- File paths and the database URL
- API keys and credentials
- Model parameters
- Orchestrator limits (tool rounds, history window)
- Seed data for the course catalog

Environment variables are loaded via python-dotenv.
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# PATHS
# ============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# ============================================================================
# LLM CONFIGURATION
# ============================================================================

# Gemini API Settings
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# Checked when the model is first called, so the store and tools work offline
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

# Model Parameters
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.3"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "1024"))
TOP_P = float(os.getenv("TOP_P", "0.95"))
TOP_K = int(os.getenv("TOP_K", "40"))

# Retry and Timeout Settings
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", "1.0"))  # seconds
TIMEOUT = int(os.getenv("TIMEOUT", "30"))  # seconds

# ============================================================================
# LANGFUSE OBSERVABILITY
# ============================================================================

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# Enable/disable Langfuse tracing
LANGFUSE_ENABLED = os.getenv("LANGFUSE_ENABLED", "false").lower() == "true"

if LANGFUSE_ENABLED and (not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY):
    print("⚠️  Warning: Langfuse is enabled but keys are missing. Tracing will be disabled.")
    LANGFUSE_ENABLED = False

# ============================================================================
# DATABASE
# ============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'enrollment.db'}")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"

# ============================================================================
# ORCHESTRATOR SETTINGS
# ============================================================================

# Model invocations allowed per user message before the loop gives up
MAX_TOOL_ROUNDS = int(os.getenv("MAX_TOOL_ROUNDS", "5"))

# Persisted user/assistant turns handed to the model, new utterance included
HISTORY_WINDOW = int(os.getenv("HISTORY_WINDOW", "20"))

# Static replies used when the model does not produce a usable answer
MALFORMED_OUTPUT_FALLBACK = "I'm sorry, I couldn't process that request. Could you rephrase?"
ROUND_LIMIT_FALLBACK = (
    "I completed the requested operations. Is there anything else I can help you with?"
)

# Reply used by the chat service when the store or the model is unavailable
SERVICE_ERROR_MESSAGE = (
    "I'm having trouble processing your request right now. "
    "This could be a temporary issue, so please try again in a moment."
)

# ============================================================================
# COURSE CATALOG
# ============================================================================

# Courses pre-loaded into an empty database
SEED_COURSES: List[Dict[str, Any]] = [
    {
        "id": "CS101",
        "name": "Introduction to Computer Science",
        "instructor": "Dr. Smith",
        "capacity": 30,
    },
    {
        "id": "MATH201",
        "name": "Linear Algebra",
        "instructor": "Dr. Johnson",
        "capacity": 25,
    },
    {
        "id": "ENG102",
        "name": "English Composition",
        "instructor": "Prof. Williams",
        "capacity": 35,
    },
    {
        "id": "PHYS101",
        "name": "Physics I",
        "instructor": "Dr. Brown",
        "capacity": 20,
    },
    {
        "id": "HIST101",
        "name": "World History",
        "instructor": "Prof. Davis",
        "capacity": 40,
    },
]

# ============================================================================
# DEVELOPMENT / DEBUG SETTINGS
# ============================================================================

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Log level name (e.g., "INFO", "DEBUG")
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Print configuration summary on import (only in debug mode)
if DEBUG:
    print("\n" + "="*60)
    print("🔧 Enroll Assistant Configuration Loaded")
    print("="*60)
    print(f"Model: {GEMINI_MODEL}")
    print(f"Temperature: {TEMPERATURE}")
    print(f"Max Tokens: {MAX_TOKENS}")
    print(f"Max Tool Rounds: {MAX_TOOL_ROUNDS}")
    print(f"History Window: {HISTORY_WINDOW}")
    print(f"Database: {DATABASE_URL}")
    print(f"Langfuse: {'✅ Enabled' if LANGFUSE_ENABLED else '❌ Disabled'}")
    print("="*60 + "\n")
