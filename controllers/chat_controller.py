import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from models.session_models import ChatTurn, MessageRole, WorkMode
from services.openai.chat_service import ChatService
from services.openai.errors import ConfigurationError, RateLimitExhausted
from services.workflow import messages

LOGGER = logging.getLogger(__name__)
IMAGE_FAILED = "Image generation failed. Please try a different prompt."


class ChatTurnPayload(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": detail})


def _parse_turns(raw: List[Any]) -> List[ChatTurn]:
    turns = []
    for item in raw:
        payload = ChatTurnPayload.model_validate(item)
        turns.append(ChatTurn(role=MessageRole(payload.role), content=payload.content, image_base64=payload.image_base64))
    return turns


async def handle_chat(request: Request, body: Dict[str, Any]) -> JSONResponse:
    """Answer one `/api/chat` call: either a chat turn or an image generation.

    Args:
        request: FastAPI Request (used to access the shared chat service).
        body: Decoded JSON body. A truthy `generateImagePrompt` selects image
            generation; otherwise `messages` must be a list of turns.

    Returns:
        `{"message": ...}` for chat, `{"success": ..., ...}` for images, or
        `{"error": ...}` with a 4xx/5xx status.
    """
    chat: ChatService = request.app.state.chat_service
    try:
        prompt = body.get("generateImagePrompt")
        if prompt:
            image = await chat.generate_image(str(prompt))
            if image:
                return JSONResponse({"success": True, "imageBase64": image})
            return JSONResponse({"success": False, "error": IMAGE_FAILED})

        raw_messages = body.get("messages")
        if raw_messages is None or not isinstance(raw_messages, list):
            return _error(400, "messages is required")
        try:
            turns = _parse_turns(raw_messages)
            mode = WorkMode(body.get("mode") or WorkMode.OHISAMA.value)
        except (ValidationError, ValueError) as exc:
            return _error(400, str(exc))

        reply = await chat.complete(turns, mode)
        return JSONResponse({"message": reply})
    except RateLimitExhausted:
        return _error(429, messages.SERVICE_BUSY)
    except ConfigurationError:
        return _error(500, messages.MISSING_API_KEY)
    except Exception as exc:
        LOGGER.exception("Chat request failed")
        return _error(500, messages.chat_error(str(exc)))
