"""
AI chat endpoints.

Endpoints Provided:
- `POST /api/ai/chat`: one message in, one reply out.
- `POST /api/chat`: a conversation (`messages`) with an optional wallet
  address; returns the reply with token usage.
- `POST /api/chat/stream`: the same conversation answered as server-sent
  events, one `data:` line per text fragment, then `[DONE]`.
- `GET /api/chat/health`: liveness of the chat route (does not call the model).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from core.exceptions import UpstreamError
from core.logging_config import log_function_call
from core.schemas import APIModel, ChatReply
from services.chat_service import ChatService

from .dependencies import get_chat_service

logger = logging.getLogger(__name__)

ai_router = APIRouter(prefix="/api/ai", tags=["AI Chat"])
chat_router = APIRouter(prefix="/api/chat", tags=["AI Chat"])


class ChatMessage(APIModel):
    role: str = "user"
    content: str


class SingleMessageRequest(APIModel):
    message: str


class ConversationRequest(APIModel):
    messages: List[ChatMessage]
    wallet_address: Optional[str] = None


@ai_router.post("/chat", response_model=ChatReply)
@log_function_call(logger)
async def ai_chat(
    request: SingleMessageRequest,
    chat: ChatService = Depends(get_chat_service),
):
    return await chat.chat(request.message)


@chat_router.post("", response_model=ChatReply)
@log_function_call(logger)
async def chat_conversation(
    request: ConversationRequest,
    chat: ChatService = Depends(get_chat_service),
):
    return await chat.chat_messages(
        [m.model_dump() for m in request.messages], request.wallet_address
    )


@chat_router.post("/stream")
async def chat_stream(
    request: ConversationRequest,
    chat: ChatService = Depends(get_chat_service),
):
    """Stream the reply as server-sent events"""
    pieces = chat.stream([m.model_dump() for m in request.messages])

    async def event_stream():
        try:
            async for piece in pieces:
                yield f"data: {json.dumps({'content': piece})}\n\n"
        except UpstreamError as e:
            logger.error(f"Chat stream failed: {e.details}")
            yield f"data: {json.dumps({'error': e.error_code, 'message': e.message})}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@chat_router.get("/health")
async def chat_health(chat: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "AI Chat",
        "provider": chat.provider.source_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
