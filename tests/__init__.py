"""
Enroll Assistant Test Suite

Unit and integration tests for the store, tools, orchestrator and services.
Run tests with: pytest tests/
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Catalog used by tests that need a course to fill up quickly
TINY_CATALOG = [
    {"id": "SEM1", "name": "Research Seminar", "instructor": "Dr. Lee", "capacity": 1},
    {"id": "LAB2", "name": "Lab Practicum", "instructor": "Dr. Park", "capacity": 2},
]

__all__ = [
    "TINY_CATALOG",
]
