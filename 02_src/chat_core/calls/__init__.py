"""Calls module."""

from .manager import CALL_TRANSITIONS, CallSessionManager, ICallSessionManager

__all__ = ["CALL_TRANSITIONS", "CallSessionManager", "ICallSessionManager"]
