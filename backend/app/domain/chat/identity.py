"""Identity registry mapping display names to stable user ids."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import ulid

from app.domain.chat import models
from app.domain.chat.policy import require_text

logger = logging.getLogger(__name__)


class IdentityRegistry:
	"""Owns every known user and their current connection handle.

	Not locked on its own: callers serialise access through the router lock.
	"""

	def __init__(self) -> None:
		self._users: Dict[str, models.User] = {}
		self._by_name: Dict[str, str] = {}

	def login_or_resume(self, display_name: str, handle: str) -> models.User:
		"""Resume the user registered under ``display_name`` or create a new one.

		Resuming keeps the user id, overwrites the connection handle and marks
		the user online. Repeated calls with the same name never create
		duplicates.
		"""
		name = require_text(display_name, "display_name_required")
		user_id = self._by_name.get(name)
		if user_id is None:
			user = models.User(
				id=str(ulid.new()),
				display_name=name,
				connection_handle=handle,
				online=True,
				created_at=models.now_ms(),
			)
			self._users[user.id] = user
			self._by_name[name] = user.id
			logger.info("user registered", extra={"user_id": user.id, "display_name": name})
			return user
		user = self._users[user_id]
		user.connection_handle = handle
		user.online = True
		logger.info("user resumed", extra={"user_id": user.id, "display_name": name})
		return user

	def mark_offline(self, user_id: str) -> Optional[models.User]:
		# The handle is left as-is; delivery must always be gated on ``online``.
		user = self._users.get(user_id)
		if user is None:
			return None
		user.online = False
		return user

	def list_online_except(self, user_id: str | None) -> List[models.User]:
		return [user for user in self._users.values() if user.online and user.id != user_id]

	def find(self, user_id: str | None) -> Optional[models.User]:
		if not user_id:
			return None
		return self._users.get(user_id)

	def online_handle(self, user_id: str) -> Optional[str]:
		"""Return the live connection handle, or None when the user is offline."""
		user = self._users.get(user_id)
		if user is None or not user.online:
			return None
		return user.connection_handle

	def online_handles(self, user_ids: Iterable[str]) -> Dict[str, str]:
		handles: Dict[str, str] = {}
		for user_id in user_ids:
			handle = self.online_handle(user_id)
			if handle:
				handles[user_id] = handle
		return handles

	def display_name(self, user_id: str | None, default: str = "Unknown") -> str:
		user = self.find(user_id)
		return user.display_name if user else default

	def online_count(self) -> int:
		return sum(1 for user in self._users.values() if user.online)

	def __len__(self) -> int:
		return len(self._users)
