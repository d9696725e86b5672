"""Chat registry for direct and group conversations."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import ulid

from app.domain.chat import models
from app.domain.chat.policy import InvalidArgument, require_text

logger = logging.getLogger(__name__)


class ChatRegistry:
	def __init__(self) -> None:
		self._chats: Dict[str, models.Chat] = {}

	def get_or_create_direct(self, user_a: str, user_b: str) -> models.Chat:
		"""Return the direct chat between two users, creating it on first request.

		The chat id is derived from the unordered pair, so (a, b) and (b, a)
		always resolve to the same chat.
		"""
		if not user_a or not user_b:
			raise InvalidArgument("participant_required")
		if user_a == user_b:
			raise InvalidArgument("cannot_chat_with_self")
		key = models.ConversationKey.from_participants(user_a, user_b)
		chat = self._chats.get(key.conversation_id)
		if chat is not None:
			return chat
		chat = models.Chat(
			id=key.conversation_id,
			participant_ids=frozenset(key.participants()),
			kind=models.DIRECT,
			created_at=models.now_ms(),
			created_by=user_a,
			ordered_participants=(user_a, user_b),
		)
		self._chats[chat.id] = chat
		logger.info("direct chat created", extra={"chat_id": chat.id})
		return chat

	def create_group(self, creator_id: str, display_name: str | None, member_ids: Iterable[str] | None) -> models.Chat:
		name = require_text(display_name, "group_name_required")
		members = models.ordered_unique(str(member) for member in (member_ids or ()))
		if not members:
			raise InvalidArgument("group_members_required")
		participants = models.ordered_unique((creator_id, *members))
		chat = models.Chat(
			id=str(ulid.new()),
			participant_ids=frozenset(participants),
			kind=models.GROUP,
			created_at=models.now_ms(),
			display_name=name,
			created_by=creator_id,
			ordered_participants=participants,
		)
		self._chats[chat.id] = chat
		logger.info(
			"group chat created",
			extra={"chat_id": chat.id, "creator_id": creator_id, "participants": len(participants)},
		)
		return chat

	def get(self, chat_id: str | None) -> Optional[models.Chat]:
		if not chat_id:
			return None
		return self._chats.get(chat_id)

	def is_participant(self, chat_id: str, user_id: str) -> bool:
		chat = self._chats.get(chat_id)
		return chat is not None and chat.has_participant(user_id)

	def list_for_user(self, user_id: str) -> List[models.Chat]:
		return [chat for chat in self._chats.values() if chat.has_participant(user_id)]

	def __len__(self) -> int:
		return len(self._chats)
