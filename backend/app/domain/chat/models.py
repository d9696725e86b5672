"""Domain models for the in-memory chat core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional, Tuple


ChatKind = str

DIRECT: ChatKind = "direct"
GROUP: ChatKind = "group"


def now_ms() -> int:
	return int(datetime.now(timezone.utc).timestamp() * 1000)


@dataclass(slots=True)
class User:
	"""A display-name identity; never destroyed, only toggled online/offline."""

	id: str
	display_name: str
	connection_handle: Optional[str]
	online: bool
	created_at: int

	def to_dict(self) -> dict:
		return {
			"user_id": self.id,
			"display_name": self.display_name,
			"online": self.online,
		}


@dataclass(slots=True)
class ConversationKey:
	"""Canonical representation of a 1:1 chat conversation."""

	user_a: str
	user_b: str

	@classmethod
	def from_participants(cls, user_one: str, user_two: str) -> "ConversationKey":
		ordered = tuple(sorted((str(user_one), str(user_two))))
		return cls(user_a=ordered[0], user_b=ordered[1])

	@property
	def conversation_id(self) -> str:
		return f"{self.user_a}-{self.user_b}"

	def participants(self) -> Tuple[str, str]:
		return (self.user_a, self.user_b)


@dataclass(slots=True)
class Chat:
	id: str
	participant_ids: FrozenSet[str]
	kind: ChatKind
	created_at: int
	display_name: Optional[str] = None
	created_by: Optional[str] = None
	# Creation order of participants, used for stable payloads
	ordered_participants: Tuple[str, ...] = ()

	def has_participant(self, user_id: str | None) -> bool:
		return user_id is not None and user_id in self.participant_ids

	def is_group(self) -> bool:
		return self.kind == GROUP

	def other_participant(self, user_id: str) -> Optional[str]:
		for participant in self.ordered_participants:
			if participant != user_id:
				return participant
		return None


@dataclass(slots=True)
class Attachment:
	filename: str
	original_name: str
	mime_type: str
	size: int
	url: str

	def to_dict(self) -> dict:
		return {
			"filename": self.filename,
			"original_name": self.original_name,
			"mime_type": self.mime_type,
			"size": self.size,
			"url": self.url,
		}


@dataclass(slots=True)
class Message:
	id: str
	chat_id: str
	seq: int
	sender_id: str
	sender_display_name: str
	timestamp: int
	text: Optional[str] = None
	attachment: Optional[Attachment] = None
	# Reserved for read receipts; nothing flips it yet
	read: bool = False

	def preview(self) -> str:
		if self.text:
			return self.text
		return "📎 File" if self.attachment else ""

	def to_dict(self, viewer_id: str | None = None) -> dict:
		return {
			"id": self.id,
			"chat_id": self.chat_id,
			"seq": self.seq,
			"text": self.text or "",
			"file": self.attachment.to_dict() if self.attachment else None,
			"sender_id": self.sender_id,
			"sender_name": self.sender_display_name,
			"timestamp": self.timestamp,
			"read": self.read,
			"sent": viewer_id == self.sender_id,
		}


@dataclass(slots=True)
class ChatStats:
	users: int = 0
	chats: int = 0
	messages: int = 0
	online: int = 0


def ordered_unique(values: Iterable[str]) -> Tuple[str, ...]:
	seen: set[str] = set()
	result: list[str] = []
	for value in values:
		if value and value not in seen:
			seen.add(value)
			result.append(value)
	return tuple(result)
