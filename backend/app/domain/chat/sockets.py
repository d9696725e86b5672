"""Socket.IO namespace for chat transport."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import socketio

from app.domain.chat.policy import ChatPolicyError
from app.domain.chat.service import ChatRouter, ClientSession
from app.obs import logging as obs_logging
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class ChatNamespace(socketio.AsyncNamespace):
	"""Namespace binding each connection to a router session.

	Connections start anonymous; the ``login`` event binds a user. Each sid
	doubles as the user's connection handle, so targeted pushes go to the
	sid's own room.
	"""

	def __init__(self, router: ChatRouter, namespace: Optional[str] = None) -> None:
		super().__init__(namespace or settings.chat_namespace)
		self.router = router
		self._sessions: Dict[str, ClientSession] = {}
		router.bind_transport(self)

	async def send(self, handle: str, event: str, payload: Any) -> None:
		obs_metrics.socket_event(self.namespace, event)
		await self.emit(event, payload, room=handle)

	def session(self, sid: str) -> ClientSession:
		return self._sessions.setdefault(sid, ClientSession(sid=sid))

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = ClientSession(sid=sid)
		logger.info("chat connect", extra={"sid": sid})

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		session = self._sessions.pop(sid, None)
		if session is not None:
			await self.router.disconnect(session)
		logger.info("chat disconnect", extra={"sid": sid})

	async def _handle(
		self,
		sid: str,
		event: str,
		handler: Callable[[ClientSession], Awaitable[object]],
	) -> None:
		obs_metrics.socket_event(self.namespace, event)
		session = self.session(sid)
		tokens = obs_logging.bind_context(user_id=session.user_id, sid=sid, route=event)
		try:
			await handler(session)
		except ChatPolicyError as exc:
			obs_metrics.inc_event_rejected(event, exc.code)
			logger.debug("chat event rejected", extra={"event": event, "code": exc.code})
			if settings.chat_error_replies:
				await self.router.reply_error(session, event, exc)
		finally:
			obs_logging.reset_context(tokens)

	async def on_login(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "login", lambda session: self.router.login(session, payload))

	async def on_get_users(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "get_users", self.router.list_online_users)

	async def on_start_chat(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "start_chat", lambda session: self.router.start_direct_chat(session, payload))

	async def on_send_message(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "send_message", lambda session: self.router.send_message(session, payload))

	async def on_upload_file(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "upload_file", lambda session: self.router.upload_attachment(session, payload))

	async def on_typing(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "typing", lambda session: self.router.set_typing(session, payload))

	async def on_create_group(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "create_group", lambda session: self.router.create_group_chat(session, payload))

	async def on_get_messages(self, sid: str, payload: Optional[dict] = None) -> None:
		await self._handle(sid, "get_messages", lambda session: self.router.get_messages(session, payload))
