"""Health check helpers for liveness and chat status probes."""

from __future__ import annotations

from typing import Any, Dict

from app.domain.chat.schemas import StatusResponse
from app.domain.chat.service import ChatRouter


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def chat_status(chat_router: ChatRouter) -> StatusResponse:
	stats = await chat_router.stats()
	return StatusResponse(
		users=stats.users,
		chats=stats.chats,
		messages=stats.messages,
		upload_enabled=chat_router.storage.enabled,
	)
