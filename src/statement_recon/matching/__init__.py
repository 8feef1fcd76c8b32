"""Matching session, suggestion strategies and workflow."""

from .session import ReconciliationSession
from .strategies import (
    SuggestionStrategy,
    SameDayAmountStrategy,
    DateWindowStrategy,
    build_strategy,
)
from .workflow import ReconciliationWorkflow, WorkflowStep

__all__ = [
    "ReconciliationSession",
    "SuggestionStrategy",
    "SameDayAmountStrategy",
    "DateWindowStrategy",
    "build_strategy",
    "ReconciliationWorkflow",
    "WorkflowStep",
]
