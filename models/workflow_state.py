"""UI-visible workflow state for one open session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from models.actions import DishOption, EquipmentItem, Recipe, SelectedDish, Summary
from models.session_models import Proposal


class Phase(str, Enum):
	WAITING = "waiting"
	PROPOSALS_SHOWN = "proposals_shown"
	AWAITING_CONFIRMATION = "awaiting_confirmation"
	MODIFICATION_REQUESTED = "modification_requested"
	IMAGE_PENDING = "image_pending"
	IMAGE_SHOWN = "image_shown"
	EQUIPMENT_SHOWN = "equipment_shown"
	COMPLETED = "completed"
	# Co-op letter (multi-dish) sub-flow
	DISH_OPTIONS_SHOWN = "dish_options_shown"
	DISHES_CONFIRMED = "dishes_confirmed"
	LAYOUT_PENDING = "layout_pending"
	LAYOUT_SHOWN = "layout_shown"


@dataclass(frozen=True)
class DishImage:
	order: int
	name: str
	image_url: str


@dataclass(frozen=True)
class WorkflowState:
	"""Everything the chat screen renders besides the transcript.

	Instances are immutable; the functions in `services.workflow.transitions`
	return new states.
	"""

	phase: Phase = Phase.WAITING
	proposals: Tuple[Proposal, ...] = ()
	analysis: Optional[str] = None
	selected_proposal: Optional[Proposal] = None
	show_proposal_confirmation: bool = False
	awaiting_modification_input: bool = False
	pending_image_prompt: Optional[str] = None
	last_generated_image_url: Optional[str] = None
	show_image_confirmation: bool = False
	summary: Optional[Summary] = None
	recipes: Tuple[Recipe, ...] = ()
	equipment: Tuple[EquipmentItem, ...] = ()
	dish_options: Tuple[DishOption, ...] = ()
	selected_dishes: Tuple[SelectedDish, ...] = ()
	current_dish_index: int = 0
	dish_images: Tuple[DishImage, ...] = field(default_factory=tuple)
	pending_layout_prompt: Optional[str] = None
	layout_image_url: Optional[str] = None

	@property
	def can_generate_image(self) -> bool:
		return self.pending_image_prompt is not None

	@property
	def current_dish(self) -> Optional[SelectedDish]:
		if 0 <= self.current_dish_index < len(self.selected_dishes):
			return self.selected_dishes[self.current_dish_index]
		return None
