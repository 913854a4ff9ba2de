"""Guided breathing: techniques, phase state machine, clock and recorder."""

from .recorder import EmptySessionError, SessionRecorder
from .session import SessionState, initial_state
from .techniques import TECHNIQUES, Technique, get_technique

__all__ = [
    "EmptySessionError",
    "SessionRecorder",
    "SessionState",
    "TECHNIQUES",
    "Technique",
    "get_technique",
    "initial_state",
]
