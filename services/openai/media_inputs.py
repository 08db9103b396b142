"""Utilities to build chat input payloads for the Responses API."""

from typing import Any, Dict, List, Sequence

from models.session_models import ChatTurn, MessageRole
from utils.media_validation import to_image_data_url


def build_turn(turn: ChatTurn) -> Dict[str, Any]:
    """Convert one history turn into a Responses API message item."""
    if turn.role is MessageRole.ASSISTANT:
        return {
            "type": "message",
            "role": "assistant",
            "content": [{"type": "output_text", "text": turn.content}],
        }

    content: List[Dict[str, Any]] = []
    if turn.image_base64:
        content.append({"type": "input_image", "image_url": to_image_data_url(turn.image_base64)})
    content.append({"type": "input_text", "text": turn.content})
    return {"type": "message", "role": "user", "content": content}


def build_inputs(system_prompt: str, turns: Sequence[ChatTurn]) -> List[Dict[str, Any]]:
    """Build the Responses API input array: system prompt followed by the history."""
    inputs: List[Dict[str, Any]] = [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": system_prompt}],
        },
    ]
    inputs.extend(build_turn(turn) for turn in turns)
    return inputs
