"""Fixed chat messages the workflow sends or shows on the user's behalf."""

from __future__ import annotations

from typing import Iterable

from models.session_models import Proposal

IMAGE_READY = "Here is the finished image!"
IMAGE_FAILED = "Image generation failed. Please try again."
LAYOUT_READY = "The cover layout image is ready!"
LAYOUT_FAILED = "Layout image generation failed. Please try again."
LAYOUT_ERROR = "An error occurred while generating the layout image."
SERVICE_BUSY = "The service is busy right now. Please wait about 30 seconds and try again."
MISSING_API_KEY = "OpenAI API key is not configured. Check your .env file."

IMAGE_CONFIRMED = "OK, I'll go with this. Please give me the list of things to prepare."
NEXT_DISH = "OK, please move on to the next dish"
FINAL_LAYOUT = "OK, please generate the final layout"
LAYOUT_CONFIRMED = "This layout is OK. Please give me the summary."

REVISION_LABELS = {
	"plate": "plate",
	"arrangement": "arrangement",
	"props": "props",
	"color": "colour tone",
	"other": "other details",
}


def proposal_confirmed(proposal: Proposal) -> str:
	return f"Proposal {proposal.id} ({proposal.title}), please. This is fine as it is."


def dishes_selected(dish_ids: Iterable[str]) -> str:
	return f"I choose {', '.join(dish_ids)}"


def revision_request(kind: str, description: str = "") -> str:
	if kind not in REVISION_LABELS:
		raise ValueError(f"Unknown revision type: {kind}")
	label = REVISION_LABELS[kind]
	description = description.strip()
	if description:
		return f"Please change the {label}: {description}"
	return f"Please change the {label}"


def chat_error(detail: str) -> str:
	prefix = "An error occurred"
	return detail if detail.startswith(prefix) else f"{prefix}: {detail}"


def image_error(detail: str) -> str:
	prefix = "Image generation error:"
	return detail if detail.startswith(prefix) else f"{prefix} {detail}"
