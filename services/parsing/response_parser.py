"""Extract structured action blocks from free-form assistant replies.

The system prompts ask the model to embed one JSON object per special
action, normally inside a fenced code block. `parse_response` walks an
ordered list of rules and returns the first action whose block is found,
decodes, and carries its required fields. The matched block is cut out of
the reply so only the prose is shown to the user.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Pattern, Tuple

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

LOGGER = logging.getLogger(__name__)

# Anything except the start of another fence.
_NO_FENCE = r"(?:(?!```).)*?"

_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class BlockMatch:
	"""A candidate JSON block located in the reply."""

	start: int
	end: int
	payload: str


@dataclass(frozen=True)
class ParseResult:
	"""Display text plus the action extracted from it, if any."""

	text: str
	action: Optional[ParsedAction] = None


Matcher = Callable[[str], Optional[BlockMatch]]
Validator = Callable[[Dict[str, Any]], bool]
Constructor = Callable[[Dict[str, Any]], ParsedAction]


@dataclass(frozen=True)
class ActionRule:
	name: str
	matcher: Matcher
	validator: Validator
	constructor: Constructor


def _discriminator(key: str, value: Optional[str] = None) -> str:
	if value is None:
		return f'"{re.escape(key)}"'
	return f'"{re.escape(key)}"\\s*:\\s*"{re.escape(value)}"'


def _fenced_pattern(discriminator: str) -> Pattern[str]:
	return re.compile(
		r"```(?:json)?\s*(\{" + _NO_FENCE + discriminator + _NO_FENCE + r"\})\s*\n?```",
		re.DOTALL | re.IGNORECASE,
	)


def fenced_matcher(key: str, value: Optional[str] = None) -> Matcher:
	"""Match a fenced block (optionally tagged `json`) containing the key."""
	pattern = _fenced_pattern(_discriminator(key, value))

	def match(text: str) -> Optional[BlockMatch]:
		found = pattern.search(text)
		if found is None:
			return None
		return BlockMatch(start=found.start(), end=found.end(), payload=found.group(1))

	return match


def loose_matcher(key: str, value: Optional[str] = None) -> Matcher:
	"""Match a bare JSON object (no fence markers) that contains the key.

	Each occurrence of the discriminating field is tried in turn; for each,
	the opening braces before it are tried in order until one decodes into an
	object spanning the field.
	"""
	pattern = re.compile(_discriminator(key, value))

	def match(text: str) -> Optional[BlockMatch]:
		for found in pattern.finditer(text):
			start = text.find("{")
			while start != -1 and start < found.start():
				try:
					obj, end = _DECODER.raw_decode(text, start)
				except ValueError:
					obj, end = None, -1
				if isinstance(obj, dict) and end > found.end():
					return BlockMatch(start=start, end=end, payload=text[start:end])
				start = text.find("{", start + 1)
		return None

	return match


def fenced_or_loose(key: str, value: Optional[str] = None) -> Matcher:
	"""Prefer the fenced block; fall back to a bare object only if no fence matched."""
	fenced = fenced_matcher(key, value)
	loose = loose_matcher(key, value)

	def match(text: str) -> Optional[BlockMatch]:
		return fenced(text) or loose(text)

	return match


def _is_action(payload: Dict[str, Any], name: str) -> bool:
	return payload.get("action") == name


def _has_prompt(payload: Dict[str, Any]) -> bool:
	prompt = payload.get("prompt")
	return isinstance(prompt, str) and bool(prompt.strip())


RULES: Tuple[ActionRule, ...] = (
	ActionRule(
		"proposals",
		fenced_or_loose("proposals"),
		lambda p: isinstance(p.get("proposals"), list),
		ProposalList.from_payload,
	),
	ActionRule(
		"summary",
		fenced_or_loose("action", "summary"),
		lambda p: _is_action(p, "summary") and isinstance(p.get("summary"), dict),
		Summary.from_payload,
	),
	ActionRule(
		"generate_image",
		fenced_or_loose("action", "generate_image"),
		lambda p: _is_action(p, "generate_image") and _has_prompt(p),
		ImageRequest.from_payload,
	),
	ActionRule(
		"recipe",
		fenced_or_loose("action", "recipe"),
		lambda p: _is_action(p, "recipe") and isinstance(p.get("recipe"), dict),
		Recipe.from_payload,
	),
	ActionRule(
		"equipment_list",
		fenced_or_loose("action", "equipment_list"),
		lambda p: _is_action(p, "equipment_list") and isinstance(p.get("equipmentList"), list),
		EquipmentList.from_payload,
	),
	ActionRule(
		"dish_selection",
		fenced_matcher("action", "dish_selection"),
		lambda p: _is_action(p, "dish_selection") and isinstance(p.get("dishList"), list),
		DishSelection.from_payload,
	),
	ActionRule(
		"dishes_confirmed",
		fenced_matcher("action", "dishes_confirmed"),
		lambda p: _is_action(p, "dishes_confirmed") and isinstance(p.get("selectedDishes"), list),
		DishesConfirmed.from_payload,
	),
	ActionRule(
		"generate_layout",
		fenced_matcher("action", "generate_layout"),
		lambda p: _is_action(p, "generate_layout") and _has_prompt(p),
		LayoutRequest.from_payload,
	),
)


def apply_rule(rule: ActionRule, text: str) -> Optional[ParseResult]:
	"""Try a single rule against the full reply; None when it does not apply."""
	block = rule.matcher(text)
	if block is None:
		return None
	try:
		payload = json.loads(block.payload)
	except ValueError as exc:
		LOGGER.warning("Failed to parse %s block: %s", rule.name, exc)
		return None
	if not isinstance(payload, dict) or not rule.validator(payload):
		LOGGER.warning("Ignoring %s block without its required fields", rule.name)
		return None
	try:
		action = rule.constructor(payload)
	except (KeyError, TypeError, ValueError, AttributeError) as exc:
		LOGGER.warning("Failed to build %s action: %s", rule.name, exc)
		return None
	display = (text[: block.start] + text[block.end :]).strip()
	return ParseResult(text=display, action=action)


def parse_response(text: str, rules: Tuple[ActionRule, ...] = RULES) -> ParseResult:
	"""Return the reply with at most one action extracted (first match wins)."""
	for rule in rules:
		result = apply_rule(rule, text)
		if result is not None:
			return result
	return ParseResult(text=text)
