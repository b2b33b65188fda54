"""
Chat API endpoints - Thin adapters between HTTP and the chat orchestrator.
Every response body has the form ``{success, ...}``; failures carry ``error``.
"""

import logging
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ChatError, ValidationError
from ..core.identity import resolve_identity
from ..core.orchestrator import ChatOrchestrator, get_orchestrator
from ..models import ChatRequest, ChatResponse, HistoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CHAT_METHODS = "POST, OPTIONS"
HISTORY_METHODS = "GET, OPTIONS"


def _cors_headers(methods: str) -> dict:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _json_response(payload: dict, status_code: int, methods: str) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=_cors_headers(methods))


def _error_response(error: ChatError, methods: str) -> JSONResponse:
    payload = ChatResponse(
        success=False,
        error=error.message,
        remaining=getattr(error, "remaining", None),
    )
    return _json_response(
        payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        error.status_code,
        methods,
    )


async def _parse_chat_request(request: Request) -> ChatRequest:
    """Read and validate the ``POST /chat`` body."""
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError()

    if not isinstance(body, dict):
        raise ValidationError()

    try:
        return ChatRequest.model_validate(body)
    except PydanticValidationError as e:
        if any(err["loc"][:1] == ("mode",) for err in e.errors()):
            raise ValidationError("Invalid mode selected.")
        raise ValidationError()


@router.post("/chat")
async def send_message(
    request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Send a chat message and get the assistant's reply.

    Body: ``{message, mode, sessionId?}``

    Returns:
        ``{success, message, sessionId, remaining}`` or ``{success: false, error}``
    """
    try:
        orchestrator.ensure_configured()
        chat_request = await _parse_chat_request(request)
        result = await orchestrator.handle_chat(
            identity=resolve_identity(request),
            message=chat_request.message,
            mode=chat_request.mode,
            session_id=chat_request.session_id,
        )
    except ChatError as e:
        return _error_response(e, CHAT_METHODS)
    except Exception:
        logger.error("Chat API error", exc_info=True)
        return _error_response(ChatError(), CHAT_METHODS)

    response = ChatResponse(
        success=True,
        message=result.message,
        session_id=result.session_id,
        remaining=result.remaining,
    )
    return _json_response(
        response.model_dump(mode="json", by_alias=True, exclude_none=True),
        status.HTTP_200_OK,
        CHAT_METHODS,
    )


@router.get("/history")
async def get_chat_history(
    request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Get the visitor's conversation and remaining quota.
    A visitor without a session gets an empty history, not an error.
    """
    try:
        result = await orchestrator.get_history(resolve_identity(request))
    except Exception:
        logger.error("History API error", exc_info=True)
        return _json_response(
            {"success": False, "error": "Failed to retrieve chat history."},
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            HISTORY_METHODS,
        )

    response = HistoryResponse(
        messages=result.messages,
        session_id=result.session_id,
        remaining=result.remaining,
    )
    return _json_response(
        response.model_dump(mode="json", by_alias=True),
        status.HTTP_200_OK,
        HISTORY_METHODS,
    )


@router.options("/chat")
async def chat_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=_cors_headers(CHAT_METHODS))


@router.options("/history")
async def history_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=_cors_headers(HISTORY_METHODS))
