"""Typing signal module."""

from .channel import ITypingChannel, RemoteTypingCallback, TypingChannel

__all__ = ["ITypingChannel", "RemoteTypingCallback", "TypingChannel"]
