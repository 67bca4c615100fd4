"""
API endpoint for the storefront assistant (Claude AI)

Endpoints:
- POST /api/v1/chat        - Answer a customer question
- GET  /api/v1/chat/health - Configuration status

Author: ReadyMix
Date: 2025-06-07
"""
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import List, Literal
from datetime import datetime, timezone
import logging

from readymix.core.config import settings
from readymix.core.exceptions import ConfigurationError
from readymix.core.rate_limit import rate_limit_check
from readymix.services.chat_service import get_chat_service

logger = logging.getLogger(__name__)

# ============================================================================
# ROUTER
# ============================================================================

router = APIRouter()


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ChatMessage(BaseModel):
    """A single message in the conversation history"""
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body for chat endpoint"""
    message: str = Field(..., min_length=1, max_length=1000, description="Customer's question")
    history: List[ChatMessage] = Field(default=[], description="Conversation history")


class ChatResponse(BaseModel):
    """Response from chat endpoint"""
    success: bool
    response: str
    intent: str
    tools_used: List[str]
    model: str
    usage: dict
    timestamp: str


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================================
# ENDPOINT: POST /api/v1/chat
# ============================================================================

@router.post("", response_model=ChatResponse, dependencies=[Depends(rate_limit_check(max_requests=20))])
async def chat(request: ChatRequest):
    """
    Answer a natural language question about products, prices or delivery.

    Examples:
    - "What grade should I use for a house foundation?"
    - "How much for 12 m3 of N25 with pump delivery?"
    - "Is S30 in stock?"
    - "Which mortar mix for brick walls?"
    """
    try:
        logger.info(f"Chat request received: {request.message[:50]}...")

        chat_service = get_chat_service()
        history = [{"role": msg.role, "content": msg.content} for msg in request.history]

        result = chat_service.process_query(
            message=request.message,
            history=history
        )

        return ChatResponse(
            success=True,
            response=result.response,
            intent=result.intent,
            tools_used=result.tools_used,
            model=result.model,
            usage={
                "input_tokens": result.input_tokens,
                "output_tokens": result.output_tokens,
                "total_tokens": result.input_tokens + result.output_tokens,
                "estimated_cost_usd": result.estimated_cost_usd,
                "context_messages": result.context_messages
            },
            timestamp=_timestamp()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        raise HTTPException(status_code=500, detail=e.message)

    except Exception as e:
        logger.error(f"Chat error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error processing chat: {str(e)}"
        )


# ============================================================================
# ENDPOINT: GET /api/v1/chat/health
# ============================================================================

@router.get("/health")
async def chat_health():
    """Service status and configuration info"""
    api_key_configured = bool(settings.ANTHROPIC_API_KEY)

    return {
        "status": "healthy" if api_key_configured else "not_configured",
        "api_key_configured": api_key_configured,
        "model": settings.CLAUDE_MODEL,
        "timestamp": _timestamp()
    }
