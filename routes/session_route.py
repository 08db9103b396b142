"""FastAPI routes for planning sessions and their workflow steps."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers import session_controller as sessions

router = APIRouter(prefix="/sessions")


class CreatePayload(BaseModel):
	mode: str = "ohisama"
	title: Optional[str] = None


class UpdatePayload(BaseModel):
	title: Optional[str] = None
	is_completed: Optional[bool] = None


class MessagePayload(BaseModel):
	text: str = ""
	image_base64: Optional[str] = None


class ConfirmPayload(BaseModel):
	auto_generate: bool = False


class RevisionPayload(BaseModel):
	type: str
	description: str = ""


class DishesPayload(BaseModel):
	ids: List[str] = Field(default_factory=list)


@router.get("")
async def list_sessions_route(request: Request, mode: Optional[str] = None):
	try:
		return await sessions.list_sessions(request, mode)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("")
async def create_session_route(request: Request, payload: CreatePayload):
	try:
		return await sessions.create_session(request, payload.mode, payload.title)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str, reset: bool = False):
	try:
		return await sessions.get_session(request, session_id, reset)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.patch("/{session_id}")
async def update_session_route(request: Request, session_id: str, payload: UpdatePayload):
	try:
		return await sessions.update_session(request, session_id, payload.title, payload.is_completed)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{session_id}")
async def delete_session_route(request: Request, session_id: str):
	try:
		return await sessions.delete_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/complete")
async def complete_session_route(request: Request, session_id: str):
	"""Mark the session completed and open the next one in the same mode."""
	try:
		return await sessions.complete_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/messages")
async def post_message_route(request: Request, session_id: str, payload: MessagePayload):
	try:
		return await sessions.send_message(request, session_id, payload.text, payload.image_base64)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/proposals/{proposal_id}/select")
async def select_proposal_route(request: Request, session_id: str, proposal_id: str):
	try:
		return await sessions.select_proposal(request, session_id, proposal_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/proposal/modify")
async def modify_proposal_route(request: Request, session_id: str):
	try:
		return await sessions.request_modification(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/proposal/confirm")
async def confirm_proposal_route(request: Request, session_id: str, payload: Optional[ConfirmPayload] = None):
	try:
		auto_generate = payload.auto_generate if payload is not None else False
		return await sessions.confirm_proposal(request, session_id, auto_generate)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/image/generate")
async def generate_image_route(request: Request, session_id: str):
	try:
		return await sessions.generate_image(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/image/confirm")
async def confirm_image_route(request: Request, session_id: str):
	try:
		return await sessions.confirm_image(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/image/revision")
async def image_revision_route(request: Request, session_id: str, payload: RevisionPayload):
	try:
		return await sessions.request_image_revision(request, session_id, payload.type, payload.description)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/dishes/select")
async def select_dishes_route(request: Request, session_id: str, payload: DishesPayload):
	try:
		return await sessions.select_dishes(request, session_id, payload.ids)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/dishes/next")
async def next_dish_route(request: Request, session_id: str):
	try:
		return await sessions.next_dish(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/layout/confirm")
async def confirm_layout_route(request: Request, session_id: str):
	try:
		return await sessions.confirm_layout(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
