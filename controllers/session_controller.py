"""Session and workflow operations exposed over HTTP."""

from __future__ import annotations

import os
from typing import Any, Awaitable, Dict, List, Optional, Sequence

from fastapi import HTTPException, Request

from models.actions import action_to_dict
from models.session_models import WorkMode
from models.workflow_state import WorkflowState
from services.workflow.controller import ImageUpload, WorkflowController, WorkflowResult
from utils.media_validation import split_base64_image


def current_user_id(request: Request) -> str:
	"""Return the caller id from `X-User-Id`, falling back to `DEFAULT_USER_ID`."""
	return request.headers.get("x-user-id") or os.getenv("DEFAULT_USER_ID") or "local"


def state_to_dict(state: WorkflowState) -> Dict[str, Any]:
	data = action_to_dict(state)
	data["phase"] = state.phase.value
	data["can_generate_image"] = state.can_generate_image
	return data


def result_to_dict(result: WorkflowResult) -> Dict[str, Any]:
	return {"session": result.session.to_record(), "state": state_to_dict(result.state)}


def _workflow(request: Request) -> WorkflowController:
	return request.app.state.workflow


def _parse_mode(mode: Optional[str]) -> Optional[WorkMode]:
	if mode is None:
		return None
	try:
		return WorkMode(mode)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}") from exc


async def _run(call: Awaitable[WorkflowResult], invalid_status: int = 409) -> Dict[str, Any]:
	"""Await a workflow call and translate lookup and state errors."""
	try:
		result = await call
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=exc.args[0] if exc.args else "Not found") from exc
	except ValueError as exc:
		raise HTTPException(status_code=invalid_status, detail=str(exc)) from exc
	return result_to_dict(result)


async def list_sessions(request: Request, mode: Optional[str] = None) -> List[Dict[str, Any]]:
	sessions = await _workflow(request).list_sessions(current_user_id(request), _parse_mode(mode))
	return [session.to_record() for session in sessions]


async def create_session(request: Request, mode: str, title: Optional[str] = None) -> Dict[str, Any]:
	work_mode = _parse_mode(mode) or WorkMode.OHISAMA
	return await _run(_workflow(request).create_session(current_user_id(request), work_mode, title))


async def get_session(request: Request, session_id: str, reset: bool = False) -> Dict[str, Any]:
	"""Return a session with its UI state; `reset` starts the state over."""
	workflow = _workflow(request)
	if reset:
		return await _run(workflow.select_session(session_id))
	return await _run(workflow.open_session(session_id))


async def update_session(
	request: Request,
	session_id: str,
	title: Optional[str] = None,
	is_completed: Optional[bool] = None,
) -> Dict[str, Any]:
	return await _run(_workflow(request).update_session(session_id, title=title, is_completed=is_completed))


async def delete_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Delete a session and return the session the client should show next."""
	return await _run(_workflow(request).delete_session(session_id))


async def complete_session(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).proceed_to_next(session_id))


async def send_message(
	request: Request,
	session_id: str,
	text: str,
	image_base64: Optional[str] = None,
) -> Dict[str, Any]:
	"""Send a user turn, optionally with a photo given as base64 or a data URL."""
	image = None
	if image_base64:
		b64_text, raw, mime_type = split_base64_image(image_base64)
		image = ImageUpload(base64=b64_text, data=raw, mime_type=mime_type)
	return await _run(_workflow(request).send_message(session_id, text, image), invalid_status=400)


async def select_proposal(request: Request, session_id: str, proposal_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).select_proposal(session_id, proposal_id))


async def request_modification(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).request_modification(session_id))


async def confirm_proposal(request: Request, session_id: str, auto_generate: bool = False) -> Dict[str, Any]:
	return await _run(_workflow(request).confirm_proposal(session_id, auto_generate))


async def generate_image(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).generate_image(session_id))


async def confirm_image(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).confirm_image(session_id))


async def request_image_revision(request: Request, session_id: str, kind: str, description: str = "") -> Dict[str, Any]:
	return await _run(_workflow(request).request_image_revision(session_id, kind, description), invalid_status=400)


async def select_dishes(request: Request, session_id: str, dish_ids: Sequence[str]) -> Dict[str, Any]:
	return await _run(_workflow(request).select_dishes(session_id, dish_ids), invalid_status=400)


async def next_dish(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).next_dish(session_id))


async def confirm_layout(request: Request, session_id: str) -> Dict[str, Any]:
	return await _run(_workflow(request).confirm_layout(session_id))
