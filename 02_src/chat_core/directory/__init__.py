"""Chat session directory module."""

from .directory import ChatSessionDirectory, IChatSessionDirectory

__all__ = ["ChatSessionDirectory", "IChatSessionDirectory"]
