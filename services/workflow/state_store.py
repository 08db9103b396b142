"""Simple in-memory store for per-session workflow state."""

from __future__ import annotations

from collections import OrderedDict

from models.workflow_state import WorkflowState

DEFAULT_MAX_SESSIONS = 256


class WorkflowStateStore:
	"""Hold the UI state of recently used sessions, keyed by session id.

	State lives only in this process; concurrent updates to the same session
	overwrite each other (last writer wins). Once `max_sessions` entries are
	held, the least recently used one is evicted and that session restarts
	from a fresh state.
	"""

	def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
		self.max_sessions = max_sessions
		self._states: "OrderedDict[str, WorkflowState]" = OrderedDict()

	def __len__(self) -> int:
		return len(self._states)

	def get(self, session_id: str) -> WorkflowState:
		"""Return the state for a session, starting a fresh one if unseen."""
		state = self._states.get(session_id)
		if state is None:
			return WorkflowState()
		self._states.move_to_end(session_id)
		return state

	def put(self, session_id: str, state: WorkflowState) -> WorkflowState:
		self._states[session_id] = state
		self._states.move_to_end(session_id)
		while len(self._states) > self.max_sessions:
			self._states.popitem(last=False)
		return state

	def reset(self, session_id: str) -> WorkflowState:
		"""Drop any transient state, e.g. when a session is reopened."""
		return self.put(session_id, WorkflowState())

	def discard(self, session_id: str) -> None:
		self._states.pop(session_id, None)
