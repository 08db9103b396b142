"""Session domain models for the styling planner."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


class WorkMode(str, Enum):
	"""Workflow variant a session runs under."""

	OHISAMA = "ohisama"
	COOP_LETTER = "coop_letter"

	@property
	def label(self) -> str:
		return MODE_LABELS[self]


MODE_LABELS = {
	WorkMode.OHISAMA: "Ohisama Newsletter",
	WorkMode.COOP_LETTER: "Co-op Letter",
}


class MessageRole(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _parse_time(value: Any) -> datetime:
	if isinstance(value, datetime):
		return value
	if not value:
		return utcnow()
	return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Message:
	"""A single chat transcript entry."""

	id: str
	role: MessageRole
	content: str
	image_url: Optional[str] = None
	generated_image_url: Optional[str] = None
	timestamp: datetime = field(default_factory=utcnow)

	def to_record(self) -> Dict[str, Any]:
		record: Dict[str, Any] = {
			"id": self.id,
			"role": self.role.value,
			"content": self.content,
			"timestamp": self.timestamp.isoformat(),
		}
		if self.image_url:
			record["image_url"] = self.image_url
		if self.generated_image_url:
			record["generated_image_url"] = self.generated_image_url
		return record

	@classmethod
	def from_record(cls, record: Dict[str, Any]) -> "Message":
		return cls(
			id=str(record.get("id") or uuid4()),
			role=MessageRole(record.get("role", "user")),
			content=record.get("content") or "",
			image_url=record.get("image_url"),
			generated_image_url=record.get("generated_image_url"),
			timestamp=_parse_time(record.get("timestamp")),
		)


@dataclass(frozen=True)
class Proposal:
	"""One ranked styling proposal (e.g. proposal A)."""

	id: str
	title: str
	description: str = ""
	menu_material: str = ""
	equipment: str = ""

	def to_record(self) -> Dict[str, str]:
		return {
			"id": self.id,
			"title": self.title,
			"description": self.description,
			"menu_material": self.menu_material,
			"equipment": self.equipment,
		}

	@classmethod
	def from_record(cls, record: Dict[str, Any]) -> "Proposal":
		return cls(
			id=str(record.get("id", "")),
			title=record.get("title") or "",
			description=record.get("description") or "",
			menu_material=record.get("menu_material") or record.get("menuMaterial") or "",
			equipment=record.get("equipment") or "",
		)


@dataclass
class Product:
	"""A physical item planned within a session."""

	id: str
	name: str
	shape: str = ""
	image_url: Optional[str] = None
	selected_proposal: Optional[Proposal] = None
	generated_image_url: Optional[str] = None
	recipe: Optional[str] = None

	def to_record(self) -> Dict[str, Any]:
		record: Dict[str, Any] = {"id": self.id, "name": self.name, "shape": self.shape}
		if self.image_url:
			record["image_url"] = self.image_url
		if self.selected_proposal is not None:
			record["selected_proposal"] = self.selected_proposal.to_record()
		if self.generated_image_url:
			record["generated_image_url"] = self.generated_image_url
		if self.recipe:
			record["recipe"] = self.recipe
		return record

	@classmethod
	def from_record(cls, record: Dict[str, Any]) -> "Product":
		proposal = record.get("selected_proposal")
		return cls(
			id=str(record.get("id") or uuid4()),
			name=record.get("name") or "",
			shape=record.get("shape") or "",
			image_url=record.get("image_url"),
			selected_proposal=Proposal.from_record(proposal) if proposal else None,
			generated_image_url=record.get("generated_image_url"),
			recipe=record.get("recipe"),
		)


@dataclass
class Session:
	"""A planning conversation owned by one user."""

	id: str
	user_id: str
	title: str
	mode: WorkMode
	theme: Optional[str] = None
	products: List[Product] = field(default_factory=list)
	messages: List[Message] = field(default_factory=list)
	is_completed: bool = False
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)

	def to_record(self) -> Dict[str, Any]:
		"""Return the persisted record shape (snake_case, ISO timestamps)."""
		return {
			"id": self.id,
			"user_id": self.user_id,
			"title": self.title,
			"mode": self.mode.value,
			"theme": self.theme,
			"products": [product.to_record() for product in self.products],
			"messages": [message.to_record() for message in self.messages],
			"is_completed": self.is_completed,
			"created_at": self.created_at.isoformat(),
			"updated_at": self.updated_at.isoformat(),
		}

	@classmethod
	def from_record(cls, record: Dict[str, Any]) -> "Session":
		return cls(
			id=str(record["id"]),
			user_id=str(record.get("user_id") or ""),
			title=record.get("title") or "",
			mode=WorkMode(record.get("mode") or WorkMode.OHISAMA.value),
			theme=record.get("theme"),
			products=[Product.from_record(p) for p in record.get("products") or []],
			messages=[Message.from_record(m) for m in record.get("messages") or []],
			is_completed=bool(record.get("is_completed", False)),
			created_at=_parse_time(record.get("created_at")),
			updated_at=_parse_time(record.get("updated_at")),
		)


def default_title(mode: WorkMode, now: Optional[datetime] = None) -> str:
	now = now or utcnow()
	return f"{mode.label} {now.strftime('%Y/%m/%d')}"


def new_session(mode: WorkMode, user_id: str, title: Optional[str] = None) -> Session:
	"""Create an empty, not-yet-persisted session."""
	now = utcnow()
	return Session(
		id=str(uuid4()),
		user_id=user_id,
		title=title or default_title(mode, now),
		mode=mode,
		created_at=now,
		updated_at=now,
	)


def add_message(
	session: Session,
	role: MessageRole,
	content: str,
	*,
	image_url: Optional[str] = None,
	generated_image_url: Optional[str] = None,
) -> Session:
	"""Return a copy of `session` with one more message at the end."""
	message = Message(
		id=str(uuid4()),
		role=role,
		content=content,
		image_url=image_url,
		generated_image_url=generated_image_url,
	)
	return dataclasses.replace(session, messages=[*session.messages, message], updated_at=utcnow())


def add_product(session: Session, product: Product) -> Session:
	return dataclasses.replace(session, products=[*session.products, product], updated_at=utcnow())


def update_product(session: Session, product_id: str, **updates: Any) -> Session:
	"""Return a copy with the matching product's fields replaced."""
	products = [
		dataclasses.replace(product, **updates) if product.id == product_id else product
		for product in session.products
	]
	return dataclasses.replace(session, products=products, updated_at=utcnow())


def with_title(session: Session, title: str) -> Session:
	return dataclasses.replace(session, title=title, updated_at=utcnow())


def mark_completed(session: Session) -> Session:
	return dataclasses.replace(session, is_completed=True, updated_at=utcnow())


@dataclass(frozen=True)
class ChatTurn:
	"""One entry of the history sent upstream; only the last turn may carry an image."""

	role: MessageRole
	content: str
	image_base64: Optional[str] = None


def history_for(session: Session, image_base64: Optional[str] = None) -> List[ChatTurn]:
	"""Build upstream history from the transcript, attaching an image to the last turn."""
	turns = [ChatTurn(role=m.role, content=m.content) for m in session.messages]
	if turns and image_base64:
		turns[-1] = dataclasses.replace(turns[-1], image_base64=image_base64)
	return turns
