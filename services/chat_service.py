"""
AI chat service.

Builds the conversation sent to the chat provider: a fixed system prompt
followed by the sanitized user (and assistant) turns. The reply text is
returned as the provider produced it.
"""

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from core.exceptions import ValidationError
from core.models import utcnow
from core.schemas import ChatReply
from core.validation import CHAT_MESSAGE_MAX_LENGTH, InputValidator
from providers.chat_provider import ChatProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI assistant in a social media app called Slacker. "
    "Keep responses concise and friendly."
)
CONVERSATION_ROLES = ("user", "assistant")
MAX_CONVERSATION_MESSAGES = 20


class ChatService:
    def __init__(self, provider: ChatProvider, system_prompt: str = SYSTEM_PROMPT):
        self.provider = provider
        self.system_prompt = system_prompt

    def build_messages(self, messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
        """System prompt plus the sanitized conversation"""
        if not messages:
            raise ValidationError("messages", messages, "Message is required")

        conversation = []
        for message in list(messages)[-MAX_CONVERSATION_MESSAGES:]:
            role = message.get("role", "user")
            if role not in CONVERSATION_ROLES:
                raise ValidationError("role", role, "Role must be 'user' or 'assistant'")
            content = InputValidator.require_text(
                message.get("content"), "message", CHAT_MESSAGE_MAX_LENGTH
            )
            conversation.append({"role": role, "content": content})

        return [{"role": "system", "content": self.system_prompt}] + conversation

    async def chat(self, message: str) -> ChatReply:
        return await self.chat_messages([{"role": "user", "content": message}])

    async def chat_messages(
        self,
        messages: Sequence[Dict[str, str]],
        wallet_address: Optional[str] = None,
    ) -> ChatReply:
        if wallet_address:
            wallet_address = InputValidator.validate_wallet_address(wallet_address)
        prompt = self.build_messages(messages)

        completion = await self.provider.complete(prompt)
        logger.info(
            f"Chat completion from {self.provider.source_name} "
            f"({completion.usage.get('total_tokens', 0)} tokens)"
        )
        return ChatReply(
            message=completion.content,
            timestamp=utcnow(),
            model=completion.model,
            wallet_address=wallet_address,
            token_usage=completion.usage,
        )

    def stream(self, messages: Sequence[Dict[str, str]]) -> AsyncIterator[str]:
        """Validate now, then hand back the provider's text stream"""
        prompt = self.build_messages(messages)
        return self.provider.stream(prompt)
