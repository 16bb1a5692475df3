"""Reply policy backed by the Anthropic Claude API."""

import os

import anthropic

from ..logging_config import get_logger
from .policy import CannedReplyPolicy, IReplyPolicy, ReplyContext

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a {role} on a marketplace where students get academic help and "
    "device repairs. Answer the last message briefly and helpfully."
)


class LLMReplyPolicy:
    """Generates replies with Claude, falling back to canned text on error."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
        max_tokens: int = 256,
        fallback: IReplyPolicy | None = None,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._max_tokens = max_tokens
        self._fallback = fallback or CannedReplyPolicy()
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    async def generate_reply(self, context: ReplyContext) -> str:
        """Generate a reply from the conversation history."""
        messages = [
            {
                "role": "assistant" if m.sender == context.responder_id else "user",
                "content": m.text or "[attachment]",
            }
            for m in context.history[-20:]
        ]
        if not messages or messages[-1]["role"] != "user":
            return await self._fallback.generate_reply(context)

        role = context.responder_role.value if context.responder_role else "helper"
        try:
            response = await self._client.messages.create(
                model=self._model,
                system=SYSTEM_PROMPT.format(role=role),
                messages=messages,
                max_tokens=self._max_tokens,
            )
            return response.content[0].text
        except Exception as e:
            logger.error(
                "LLM reply failed: %s",
                e,
                extra={"conversation_id": context.conversation_id},
            )
            return await self._fallback.generate_reply(context)
