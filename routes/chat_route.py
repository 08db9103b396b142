from typing import Any, Dict

from fastapi import APIRouter, Body, Request

from controllers.chat_controller import handle_chat

router = APIRouter(prefix="/api")


@router.post("/chat")
async def chat_route(request: Request, body: Dict[str, Any] = Body(...)):
	"""Chat turn or image generation; errors come back as `{"error": ...}`."""
	return await handle_chat(request, body)
