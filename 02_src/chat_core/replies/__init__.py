"""Reply policy module."""

from .llm_provider import LLMReplyPolicy
from .policy import CannedReplyPolicy, IReplyPolicy, ReplyContext
from .responder import AutoResponder

__all__ = [
    "AutoResponder",
    "CannedReplyPolicy",
    "IReplyPolicy",
    "LLMReplyPolicy",
    "ReplyContext",
]
