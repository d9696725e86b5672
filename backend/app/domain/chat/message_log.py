"""Append-only, per-chat ordered message log."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import ulid

from app.domain.chat import models
from app.domain.chat.policy import InvalidArgument

logger = logging.getLogger(__name__)


class MessageLog:
	def __init__(self) -> None:
		self._messages: Dict[str, List[models.Message]] = {}
		self._last_timestamp = 0
		self._total = 0

	def append(
		self,
		chat_id: str,
		sender: models.User,
		text: Optional[str] = None,
		attachment: Optional[models.Attachment] = None,
	) -> models.Message:
		"""Append a message and return it.

		Timestamps never go backwards, so equal timestamps are ordered by
		insertion; ``seq`` is strictly increasing within a chat.
		"""
		body = text if text and text.strip() else None
		if body is None and attachment is None:
			raise InvalidArgument("message_empty")
		messages = self._messages.setdefault(chat_id, [])
		self._last_timestamp = max(models.now_ms(), self._last_timestamp)
		message = models.Message(
			id=str(ulid.new()),
			chat_id=chat_id,
			seq=messages[-1].seq + 1 if messages else 1,
			sender_id=sender.id,
			sender_display_name=sender.display_name,
			timestamp=self._last_timestamp,
			text=body,
			attachment=attachment,
		)
		messages.append(message)
		self._total += 1
		logger.debug("message appended", extra={"chat_id": chat_id, "message_id": message.id, "seq": message.seq})
		return message

	def list_for(self, chat_id: str) -> List[models.Message]:
		return list(self._messages.get(chat_id, ()))

	def last(self, chat_id: str) -> Optional[models.Message]:
		messages = self._messages.get(chat_id)
		return messages[-1] if messages else None

	def total(self) -> int:
		return self._total
