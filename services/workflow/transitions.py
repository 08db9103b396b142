"""Pure state transitions for the planning workflow.

Every function takes the current `WorkflowState` plus event data and returns
a new state; nothing here performs I/O, so the whole state machine can be
exercised without a network or a database.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple

from models.actions import (
	DishesConfirmed,
	DishSelection,
	EquipmentList,
	ImageRequest,
	LayoutRequest,
	ParsedAction,
	ProposalList,
	Recipe,
	Summary,
)
from models.session_models import WorkMode
from models.workflow_state import DishImage, Phase, WorkflowState


@dataclass(frozen=True)
class ActionEffects:
	"""Session-level changes requested by an action."""

	title: Optional[str] = None
	theme: Optional[str] = None
	recipe: Optional[Recipe] = None


NO_EFFECTS = ActionEffects()


def _replace(state: WorkflowState, **changes) -> WorkflowState:
	return dataclasses.replace(state, **changes)


def _is_default_title(title: str, mode: WorkMode) -> bool:
	return title.startswith(mode.label)


def apply_action(
	state: WorkflowState,
	action: Optional[ParsedAction],
	*,
	mode: WorkMode,
	session_title: str = "",
) -> Tuple[WorkflowState, ActionEffects]:
	"""Fold one parsed action into the state."""
	if action is None:
		return state, NO_EFFECTS

	if isinstance(action, ProposalList):
		effects = NO_EFFECTS
		if action.theme and mode is WorkMode.COOP_LETTER and _is_default_title(session_title, mode):
			effects = ActionEffects(title=action.theme, theme=action.theme)
		return (
			_replace(
				state,
				phase=Phase.PROPOSALS_SHOWN,
				proposals=action.proposals,
				analysis=action.analysis or state.analysis,
				selected_proposal=None,
				show_proposal_confirmation=False,
				awaiting_modification_input=False,
			),
			effects,
		)

	if isinstance(action, Summary):
		effects = ActionEffects(theme=action.theme) if action.theme else NO_EFFECTS
		return _replace(state, phase=Phase.COMPLETED, summary=action), effects

	if isinstance(action, ImageRequest):
		return (
			_replace(
				state,
				phase=Phase.IMAGE_PENDING,
				pending_image_prompt=action.prompt,
				show_proposal_confirmation=False,
				awaiting_modification_input=False,
			),
			NO_EFFECTS,
		)

	if isinstance(action, Recipe):
		return _replace(state, recipes=(*state.recipes, action)), ActionEffects(recipe=action)

	if isinstance(action, EquipmentList):
		return (
			_replace(state, phase=Phase.EQUIPMENT_SHOWN, equipment=action.items, show_image_confirmation=False),
			NO_EFFECTS,
		)

	if isinstance(action, DishSelection):
		effects = ActionEffects(title=action.theme, theme=action.theme) if action.theme else NO_EFFECTS
		return _replace(state, phase=Phase.DISH_OPTIONS_SHOWN, dish_options=action.dishes), effects

	if isinstance(action, DishesConfirmed):
		return (
			_replace(
				state,
				phase=Phase.DISHES_CONFIRMED,
				selected_dishes=action.dishes,
				current_dish_index=0,
				dish_options=(),
			),
			NO_EFFECTS,
		)

	if isinstance(action, LayoutRequest):
		return _replace(state, phase=Phase.LAYOUT_PENDING, pending_layout_prompt=action.prompt), NO_EFFECTS

	raise TypeError(f"Unsupported action: {action!r}")


def select_proposal(state: WorkflowState, proposal_id: str) -> WorkflowState:
	"""Open the confirmation prompt for a proposal; nothing is sent yet."""
	for proposal in state.proposals:
		if proposal.id == proposal_id:
			return _replace(
				state,
				phase=Phase.AWAITING_CONFIRMATION,
				selected_proposal=proposal,
				show_proposal_confirmation=True,
				awaiting_modification_input=False,
			)
	raise KeyError(f"Proposal {proposal_id} not found")


def request_modification(state: WorkflowState) -> WorkflowState:
	if state.selected_proposal is None:
		raise ValueError("No proposal is selected.")
	return _replace(
		state,
		phase=Phase.MODIFICATION_REQUESTED,
		show_proposal_confirmation=False,
		awaiting_modification_input=True,
	)


def begin_confirmation(state: WorkflowState) -> WorkflowState:
	if state.selected_proposal is None:
		raise ValueError("No proposal is selected.")
	return _replace(state, show_proposal_confirmation=False, awaiting_modification_input=False)


def take_image_prompt(state: WorkflowState) -> Tuple[str, WorkflowState]:
	"""Consume the cached image prompt; it is cleared whatever the outcome."""
	if state.pending_image_prompt is None:
		raise ValueError("There is no image prompt waiting to be generated.")
	return state.pending_image_prompt, _replace(state, pending_image_prompt=None)


def image_generated(state: WorkflowState, image_url: str, mode: WorkMode) -> WorkflowState:
	changes = {
		"phase": Phase.IMAGE_SHOWN,
		"last_generated_image_url": image_url,
		"show_image_confirmation": mode is WorkMode.OHISAMA,
	}
	dish = state.current_dish
	if mode is WorkMode.COOP_LETTER and dish is not None:
		changes["dish_images"] = (*state.dish_images, DishImage(order=dish.order, name=dish.name, image_url=image_url))
	return _replace(state, **changes)


def image_failed(state: WorkflowState) -> WorkflowState:
	return _replace(state, phase=Phase.WAITING)


def image_confirmed(state: WorkflowState) -> WorkflowState:
	return _replace(state, show_image_confirmation=False)


def revision_requested(state: WorkflowState) -> WorkflowState:
	return _replace(state, show_image_confirmation=False, phase=Phase.WAITING)


def advance_dish(state: WorkflowState) -> Tuple[WorkflowState, bool]:
	"""Move to the next selected dish; the flag tells whether we were on the last one."""
	if state.current_dish_index < len(state.selected_dishes) - 1:
		return _replace(state, current_dish_index=state.current_dish_index + 1), False
	return state, True


def take_layout_prompt(state: WorkflowState) -> Tuple[str, WorkflowState]:
	if state.pending_layout_prompt is None:
		raise ValueError("There is no layout prompt waiting to be generated.")
	return state.pending_layout_prompt, _replace(state, pending_layout_prompt=None)


def layout_generated(state: WorkflowState, image_url: str) -> WorkflowState:
	return _replace(state, phase=Phase.LAYOUT_SHOWN, layout_image_url=image_url)


def layout_failed(state: WorkflowState) -> WorkflowState:
	return _replace(state, phase=Phase.DISHES_CONFIRMED)
