"""Orchestration module for poll cycle coordination."""

from src.orchestration.context import NotifierContext
from src.orchestration.poll_cycle import PollCycle
from src.orchestration.result import PollSummary

__all__ = [
    "NotifierContext",
    "PollCycle",
    "PollSummary",
]
