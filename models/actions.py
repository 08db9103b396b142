"""Structured actions the assistant embeds in its replies.

Each class mirrors one JSON shape the system prompts ask the model to emit.
`ParsedAction` is the union of all of them; the parser produces at most one
per reply and the workflow consumes it immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from models.session_models import Proposal

EQUIPMENT_CATEGORIES = ("plate", "utensil", "prop", "food", "other")


def _text(value: Any) -> str:
	return "" if value is None else str(value)


def _strings(values: Any) -> Tuple[str, ...]:
	if not isinstance(values, list):
		return ()
	return tuple(_text(v) for v in values)


@dataclass(frozen=True)
class ProposalList:
	proposals: Tuple[Proposal, ...]
	analysis: Optional[str] = None
	theme: Optional[str] = None
	kind: str = field(default="proposals", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "ProposalList":
		return cls(
			proposals=tuple(Proposal.from_record(p) for p in payload["proposals"] if isinstance(p, dict)),
			analysis=payload.get("analysis"),
			theme=payload.get("theme"),
		)


@dataclass(frozen=True)
class SummaryRow:
	product_name: str
	menu_material: str
	equipment: str


@dataclass(frozen=True)
class Summary:
	table: Tuple[SummaryRow, ...]
	shopping_list: Tuple[str, ...] = ()
	equipment_list: Tuple[str, ...] = ()
	recipes: Tuple[str, ...] = ()
	theme: Optional[str] = None
	kind: str = field(default="summary", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "Summary":
		body = payload["summary"]
		rows = body.get("table") if isinstance(body.get("table"), list) else []
		return cls(
			table=tuple(
				SummaryRow(
					product_name=_text(row.get("productName")),
					menu_material=_text(row.get("menuMaterial")),
					equipment=_text(row.get("equipment")),
				)
				for row in rows
				if isinstance(row, dict)
			),
			shopping_list=_strings(body.get("shoppingList")),
			equipment_list=_strings(body.get("equipmentList")),
			recipes=_strings(body.get("recipes")),
			theme=body.get("theme"),
		)


@dataclass(frozen=True)
class ImageRequest:
	prompt: str
	kind: str = field(default="generate_image", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "ImageRequest":
		return cls(prompt=_text(payload["prompt"]))


@dataclass(frozen=True)
class Ingredient:
	name: str
	amount: str


@dataclass(frozen=True)
class Recipe:
	title: str
	servings: str
	ingredients: Tuple[Ingredient, ...]
	steps: Tuple[str, ...]
	tips: Optional[str] = None
	kind: str = field(default="recipe", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "Recipe":
		body = payload["recipe"]
		ingredients = body.get("ingredients") if isinstance(body.get("ingredients"), list) else []
		return cls(
			title=_text(body.get("title")),
			servings=_text(body.get("servings")),
			ingredients=tuple(
				Ingredient(name=_text(i.get("name")), amount=_text(i.get("amount")))
				for i in ingredients
				if isinstance(i, dict)
			),
			steps=_strings(body.get("steps")),
			tips=body.get("tips"),
		)

	def as_text(self) -> str:
		"""Render the recipe as plain text for storing on a product."""
		lines = [f"{self.title} ({self.servings})" if self.servings else self.title]
		lines.extend(f"- {i.name}: {i.amount}" for i in self.ingredients)
		lines.extend(f"{n}. {step}" for n, step in enumerate(self.steps, start=1))
		if self.tips:
			lines.append(f"Tips: {self.tips}")
		return "\n".join(lines)


@dataclass(frozen=True)
class EquipmentItem:
	name: str
	quantity: str
	category: str = "other"
	description: Optional[str] = None
	image_url: Optional[str] = None


@dataclass(frozen=True)
class EquipmentList:
	items: Tuple[EquipmentItem, ...]
	kind: str = field(default="equipment_list", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "EquipmentList":
		items = payload["equipmentList"] if isinstance(payload["equipmentList"], list) else []
		return cls(
			items=tuple(
				EquipmentItem(
					name=_text(item.get("name")),
					quantity=_text(item.get("quantity")),
					category=item.get("category") if item.get("category") in EQUIPMENT_CATEGORIES else "other",
					description=item.get("description"),
					image_url=item.get("imageUrl"),
				)
				for item in items
				if isinstance(item, dict)
			)
		)


@dataclass(frozen=True)
class DishOption:
	id: str
	name: str
	category: str = ""
	description: str = ""
	appeal: str = ""


@dataclass(frozen=True)
class DishSelection:
	dishes: Tuple[DishOption, ...]
	theme: Optional[str] = None
	kind: str = field(default="dish_selection", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "DishSelection":
		dishes = payload["dishList"] if isinstance(payload["dishList"], list) else []
		return cls(
			dishes=tuple(
				DishOption(
					id=_text(d.get("id")),
					name=_text(d.get("name")),
					category=_text(d.get("category")),
					description=_text(d.get("description")),
					appeal=_text(d.get("appeal")),
				)
				for d in dishes
				if isinstance(d, dict)
			),
			theme=payload.get("theme"),
		)


@dataclass(frozen=True)
class SelectedDish:
	order: int
	id: str
	name: str


@dataclass(frozen=True)
class DishesConfirmed:
	dishes: Tuple[SelectedDish, ...]
	kind: str = field(default="dishes_confirmed", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "DishesConfirmed":
		dishes = payload["selectedDishes"] if isinstance(payload["selectedDishes"], list) else []
		return cls(
			dishes=tuple(
				SelectedDish(order=int(d.get("order") or n), id=_text(d.get("id")), name=_text(d.get("name")))
				for n, d in enumerate(dishes, start=1)
				if isinstance(d, dict)
			)
		)


@dataclass(frozen=True)
class LayoutRequest:
	prompt: str
	kind: str = field(default="generate_layout", init=False)

	@classmethod
	def from_payload(cls, payload: Dict[str, Any]) -> "LayoutRequest":
		return cls(prompt=_text(payload["prompt"]))


ParsedAction = Union[
	ProposalList,
	Summary,
	ImageRequest,
	Recipe,
	EquipmentList,
	DishSelection,
	DishesConfirmed,
	LayoutRequest,
]


def action_to_dict(action: Any) -> Any:
	"""Convert an action (or any nested dataclass/tuple) into JSON-ready data."""
	if hasattr(action, "__dataclass_fields__"):
		return {name: action_to_dict(getattr(action, name)) for name in action.__dataclass_fields__}
	if isinstance(action, (list, tuple)):
		return [action_to_dict(item) for item in action]
	return action
