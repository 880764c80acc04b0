"""PaintQ package exposing answer matching, round control, and the web application."""

from .matcher import matches
from .rounds import RoundStateMachine
from .session import GameSession
from .ui import app

__all__ = ["GameSession", "RoundStateMachine", "app", "matches"]
