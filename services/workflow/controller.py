"""Drive the planning workflow for one session at a time.

`WorkflowController` glues the pure transitions to the outside world: it
loads and saves sessions through a `SessionRepository`, talks to the chat
service, stores generated images, and keeps the per-session UI state in a
`WorkflowStateStore`.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
from uuid import uuid4

from dal.session_dal import SessionRepository
from models.session_models import (
	ChatTurn,
	MessageRole,
	Product,
	Session,
	WorkMode,
	add_message,
	add_product,
	history_for,
	mark_completed,
	new_session,
	update_product,
	with_title,
)
from models.workflow_state import WorkflowState
from services.openai.errors import ConfigurationError, RateLimitExhausted
from services.parsing.response_parser import parse_response
from services.workflow import messages, transitions
from services.workflow.state_store import WorkflowStateStore

LOGGER = logging.getLogger(__name__)


class ChatBackend(Protocol):
	async def complete(self, turns: Sequence[ChatTurn], mode: WorkMode = WorkMode.OHISAMA) -> str:
		...

	async def generate_image(self, prompt: str) -> Optional[str]:
		...


class ImageSink(Protocol):
	async def save(
		self,
		image_bytes: bytes,
		*,
		kind: str,
		session_id: Optional[str] = None,
		mime_type: Optional[str] = None,
		prompt: Optional[str] = None,
	) -> str:
		...

	async def save_generated(self, session_id: str, image_base64: str, prompt: str) -> str:
		...

	async def discard_session(self, session_id: str) -> int:
		...


@dataclass(frozen=True)
class ImageUpload:
	"""A validated user photo attached to a chat turn."""

	base64: str
	data: bytes
	mime_type: str


@dataclass(frozen=True)
class WorkflowResult:
	session: Session
	state: WorkflowState


def describe_error(exc: BaseException) -> str:
	"""Return the user-facing text for an upstream or persistence failure."""
	if isinstance(exc, RateLimitExhausted):
		return messages.SERVICE_BUSY
	if isinstance(exc, ConfigurationError):
		return messages.MISSING_API_KEY
	return str(exc) or exc.__class__.__name__


class WorkflowController:
	"""Session-level operations behind the chat screen."""

	def __init__(
		self,
		repository: SessionRepository,
		chat: ChatBackend,
		images: ImageSink,
		states: Optional[WorkflowStateStore] = None,
	) -> None:
		self._repo = repository
		self._chat = chat
		self._images = images
		self._states = states or WorkflowStateStore()
		# Sessions whose latest version could not be saved yet, keyed by id.
		self._unsaved: Dict[str, Session] = {}

	# Session management

	async def list_sessions(self, user_id: str, mode: Optional[WorkMode] = None) -> List[Session]:
		sessions = await self._repo.list(user_id, mode)
		saved = {s.id for s in sessions}
		pending = [
			s for s in self._unsaved.values()
			if s.id not in saved and s.user_id == user_id and (mode is None or s.mode is WorkMode(mode))
		]
		if not pending:
			return sessions
		return sorted([*pending, *sessions], key=lambda s: s.updated_at, reverse=True)

	async def create_session(self, user_id: str, mode: WorkMode, title: Optional[str] = None) -> WorkflowResult:
		"""Create a session; if saving fails it stays usable in memory until a later save succeeds."""
		session = new_session(mode, user_id, title)
		try:
			await self._save(session)
		except Exception:
			LOGGER.exception("Failed to create session %s", session.id)
		return WorkflowResult(session, self._states.reset(session.id))

	async def open_session(self, session_id: str) -> WorkflowResult:
		session = await self._load(session_id)
		return WorkflowResult(session, self._states.get(session_id))

	async def select_session(self, session_id: str) -> WorkflowResult:
		"""Switch to a session, discarding its transient UI state."""
		session = await self._load(session_id)
		return WorkflowResult(session, self._states.reset(session_id))

	async def update_session(
		self,
		session_id: str,
		*,
		title: Optional[str] = None,
		is_completed: Optional[bool] = None,
	) -> WorkflowResult:
		session = await self._load(session_id)
		if title is not None:
			session = with_title(session, title)
		if is_completed:
			session = mark_completed(session)
		elif is_completed is False:
			session = dataclasses.replace(session, is_completed=False)
		await self._save(session)
		return WorkflowResult(session, self._states.get(session_id))

	async def delete_session(self, session_id: str) -> WorkflowResult:
		"""Delete a session and return the one to show next.

		When the user has no session left in that mode a fresh one is created.
		"""
		session = await self._load(session_id)
		await self._repo.delete(session_id)
		self._unsaved.pop(session_id, None)
		self._states.discard(session_id)
		try:
			await self._images.discard_session(session_id)
		except Exception:
			LOGGER.exception("Failed to remove images of session %s", session_id)
		remaining = await self.list_sessions(session.user_id, session.mode)
		if remaining:
			return WorkflowResult(remaining[0], self._states.get(remaining[0].id))
		return await self.create_session(session.user_id, session.mode)

	async def proceed_to_next(self, session_id: str) -> WorkflowResult:
		"""Mark the session completed and open a new one in the same mode."""
		session = mark_completed(await self._load(session_id))
		try:
			await self._save(session)
		except Exception:
			LOGGER.exception("Failed to mark session %s as completed", session_id)
		self._states.discard(session_id)
		return await self.create_session(session.user_id, session.mode)

	# Chat turns

	async def send_message(self, session_id: str, text: str, image: Optional[ImageUpload] = None) -> WorkflowResult:
		if not text.strip() and image is None:
			raise ValueError("Message text is required.")
		session, state = await self._open(session_id)
		session, state = await self._exchange(session, state, text.strip(), image)
		return await self._finish(session, state)

	async def select_proposal(self, session_id: str, proposal_id: str) -> WorkflowResult:
		"""Open the confirmation prompt for a proposal without sending anything."""
		session, state = await self._open(session_id)
		return self._commit(session, transitions.select_proposal(state, proposal_id))

	async def request_modification(self, session_id: str) -> WorkflowResult:
		session, state = await self._open(session_id)
		return self._commit(session, transitions.request_modification(state))

	async def confirm_proposal(self, session_id: str, auto_generate: bool = False) -> WorkflowResult:
		"""Confirm the selected proposal and ask the model for its image prompt."""
		session, state = await self._open(session_id)
		state = transitions.begin_confirmation(state)
		proposal = state.selected_proposal
		if session.mode is WorkMode.OHISAMA:
			session = with_title(session, proposal.title)
		session = add_product(
			session,
			Product(id=str(uuid4()), name=proposal.title, shape=state.analysis or "", selected_proposal=proposal),
		)
		session, state = await self._exchange(session, state, messages.proposal_confirmed(proposal))
		if auto_generate and state.pending_image_prompt is not None:
			session, state = await self._generate_image(session, state)
		return await self._finish(session, state)

	async def generate_image(self, session_id: str) -> WorkflowResult:
		"""Generate the image for the cached prompt; only allowed while one is pending."""
		session, state = await self._open(session_id)
		session, state = await self._generate_image(session, state)
		return self._commit(session, state)

	async def confirm_image(self, session_id: str) -> WorkflowResult:
		session, state = await self._open(session_id)
		state = transitions.image_confirmed(state)
		session, state = await self._exchange(session, state, messages.IMAGE_CONFIRMED)
		return await self._finish(session, state)

	async def request_image_revision(self, session_id: str, kind: str, description: str = "") -> WorkflowResult:
		text = messages.revision_request(kind, description)
		session, state = await self._open(session_id)
		state = transitions.revision_requested(state)
		session, state = await self._exchange(session, state, text)
		return await self._finish(session, state)

	async def select_dishes(self, session_id: str, dish_ids: Sequence[str]) -> WorkflowResult:
		if not dish_ids:
			raise ValueError("Select at least one dish.")
		return await self.send_message(session_id, messages.dishes_selected(dish_ids))

	async def next_dish(self, session_id: str) -> WorkflowResult:
		"""Advance to the next dish, or ask for the final layout after the last one."""
		session, state = await self._open(session_id)
		state, was_last = transitions.advance_dish(state)
		text = messages.FINAL_LAYOUT if was_last else messages.NEXT_DISH
		session, state = await self._exchange(session, state, text)
		return await self._finish(session, state)

	async def confirm_layout(self, session_id: str) -> WorkflowResult:
		return await self.send_message(session_id, messages.LAYOUT_CONFIRMED)

	# Internals

	async def _load(self, session_id: str) -> Session:
		session = self._unsaved.get(session_id) or await self._repo.get(session_id)
		if session is None:
			raise KeyError(f"Session {session_id} not found")
		return session

	async def _open(self, session_id: str) -> Tuple[Session, WorkflowState]:
		return await self._load(session_id), self._states.get(session_id)

	def _commit(self, session: Session, state: WorkflowState) -> WorkflowResult:
		self._states.put(session.id, state)
		return WorkflowResult(session, state)

	async def _finish(self, session: Session, state: WorkflowState) -> WorkflowResult:
		if session.mode is WorkMode.COOP_LETTER and state.pending_layout_prompt is not None:
			session, state = await self._generate_layout(session, state)
		return self._commit(session, state)

	async def _save(self, session: Session) -> None:
		"""Upsert the session, keeping it in memory while the repository rejects it."""
		try:
			await self._repo.upsert(session)
		except Exception:
			self._unsaved[session.id] = session
			raise
		self._unsaved.pop(session.id, None)

	async def _save_quietly(self, session: Session) -> None:
		try:
			await self._save(session)
		except Exception:
			LOGGER.exception("Failed to save session %s", session.id)

	async def _persist(self, session: Session) -> Session:
		"""Save the session; on failure report it in the chat instead of retrying."""
		try:
			await self._save(session)
		except Exception as exc:
			LOGGER.exception("Failed to save session %s", session.id)
			session = add_message(session, MessageRole.ASSISTANT, messages.chat_error(describe_error(exc)))
			await self._save_quietly(session)
		return session

	def _apply_effects(self, session: Session, effects: transitions.ActionEffects) -> Session:
		if effects.title and effects.title != session.title:
			session = with_title(session, effects.title)
		if effects.theme:
			session = dataclasses.replace(session, theme=effects.theme)
		if effects.recipe is not None and session.products:
			session = update_product(session, session.products[-1].id, recipe=effects.recipe.as_text())
		return session

	async def _exchange(
		self,
		session: Session,
		state: WorkflowState,
		text: str,
		image: Optional[ImageUpload] = None,
	) -> Tuple[Session, WorkflowState]:
		"""Send one user turn and fold the reply into session and state."""
		try:
			image_url = None
			if image is not None:
				image_url = await self._images.save(
					image.data, kind="upload", session_id=session.id, mime_type=image.mime_type
				)
			session = add_message(session, MessageRole.USER, text, image_url=image_url)
			await self._save(session)
			reply = await self._chat.complete(
				history_for(session, image.base64 if image is not None else None), session.mode
			)
		except Exception as exc:
			LOGGER.exception("Chat turn failed for session %s", session.id)
			session = add_message(session, MessageRole.ASSISTANT, messages.chat_error(describe_error(exc)))
			await self._save_quietly(session)
			return session, state

		parsed = parse_response(reply)
		state, effects = transitions.apply_action(state, parsed.action, mode=session.mode, session_title=session.title)
		session = self._apply_effects(session, effects)
		session = add_message(session, MessageRole.ASSISTANT, parsed.text or reply)
		return await self._persist(session), state

	async def _generate_image(self, session: Session, state: WorkflowState) -> Tuple[Session, WorkflowState]:
		prompt, state = transitions.take_image_prompt(state)
		try:
			image_b64 = await self._chat.generate_image(prompt)
			url = await self._images.save_generated(session.id, image_b64, prompt) if image_b64 else None
		except Exception as exc:
			LOGGER.exception("Image generation failed for session %s", session.id)
			session = add_message(session, MessageRole.ASSISTANT, messages.image_error(describe_error(exc)))
			return await self._persist(session), transitions.image_failed(state)

		if url is None:
			session = add_message(session, MessageRole.ASSISTANT, messages.IMAGE_FAILED)
			return await self._persist(session), transitions.image_failed(state)

		if session.products:
			session = update_product(session, session.products[-1].id, generated_image_url=url)
		session = add_message(session, MessageRole.ASSISTANT, messages.IMAGE_READY, generated_image_url=url)
		return await self._persist(session), transitions.image_generated(state, url, session.mode)

	async def _generate_layout(self, session: Session, state: WorkflowState) -> Tuple[Session, WorkflowState]:
		prompt, state = transitions.take_layout_prompt(state)
		try:
			image_b64 = await self._chat.generate_image(prompt)
			url = await self._images.save_generated(session.id, image_b64, prompt) if image_b64 else None
		except Exception:
			LOGGER.exception("Layout generation failed for session %s", session.id)
			session = add_message(session, MessageRole.ASSISTANT, messages.LAYOUT_ERROR)
			return await self._persist(session), transitions.layout_failed(state)

		if url is None:
			session = add_message(session, MessageRole.ASSISTANT, messages.LAYOUT_FAILED)
			return await self._persist(session), transitions.layout_failed(state)

		session = add_message(session, MessageRole.ASSISTANT, messages.LAYOUT_READY, generated_image_url=url)
		return await self._persist(session), transitions.layout_generated(state, url)
