"""Presence and fan-out router for the in-memory chat core."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol

from app.domain.chat import models, policy, schemas
from app.domain.chat.attachments import AttachmentStorage, decode_base64_payload
from app.domain.chat.identity import IdentityRegistry
from app.domain.chat.message_log import MessageLog
from app.domain.chat.registry import ChatRegistry
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

# Outbound event names
LOGIN_SUCCESS = "login:success"
PRESENCE_ONLINE = "presence:online"
PRESENCE_OFFLINE = "presence:offline"
USERS_LIST = "users:list"
CHAT_STARTED = "chat:started"
CHAT_NEW = "chat:new"
CHAT_MESSAGE = "chat:message"
CHAT_MESSAGES = "chat:messages"
CHAT_TYPING = "chat:typing"
FILE_UPLOADED = "chat:file_uploaded"
UPLOAD_ERROR = "chat:upload_error"
CHAT_ERROR = "chat:error"


class Transport(Protocol):
	async def send(self, handle: str, event: str, payload: Any) -> None:
		...


@dataclass(slots=True)
class ClientSession:
	"""Per-connection state: Anonymous until a login binds a user id."""

	sid: str
	user_id: Optional[str] = None

	@property
	def identified(self) -> bool:
		return self.user_id is not None


@dataclass(slots=True)
class Delivery:
	handle: str
	event: str
	payload: Any


class ChatState:
	"""The three registries, owned together for the lifetime of the process."""

	def __init__(self) -> None:
		self.users = IdentityRegistry()
		self.chats = ChatRegistry()
		self.messages = MessageLog()

	def stats(self) -> models.ChatStats:
		return models.ChatStats(
			users=len(self.users),
			chats=len(self.chats),
			messages=self.messages.total(),
			online=self.users.online_count(),
		)


class ChatRouter:
	"""Applies client events to the chat state and fans results out.

	Every handler mutates state, decides recipients and dispatches under one
	lock, so no handler observes another half-applied and each recipient sees
	events in processing order. Rejected events raise ``ChatPolicyError``
	before anything is mutated or delivered.
	"""

	def __init__(
		self,
		transport: Optional[Transport] = None,
		*,
		state: Optional[ChatState] = None,
		storage: Optional[AttachmentStorage] = None,
	) -> None:
		self.state = state or ChatState()
		self.storage = storage or AttachmentStorage()
		self._transport = transport
		self._lock = asyncio.Lock()

	def bind_transport(self, transport: Transport) -> None:
		self._transport = transport

	async def _dispatch(self, deliveries: Iterable[Delivery]) -> None:
		if self._transport is None:
			return
		for delivery in deliveries:
			try:
				await self._transport.send(delivery.handle, delivery.event, delivery.payload)
			except Exception:
				logger.warning(
					"delivery failed",
					extra={"event": delivery.event, "handle": delivery.handle},
					exc_info=True,
				)

	def _require_user(self, session: ClientSession) -> models.User:
		user = self.state.users.find(session.user_id)
		if user is None:
			raise policy.PermissionDenied("login_required")
		return user

	def _summary(self, chat: models.Chat, viewer_id: str) -> schemas.ChatSummary:
		users = self.state.users
		other_id = None if chat.is_group() else chat.other_participant(viewer_id)
		other = users.find(other_id)
		if chat.is_group():
			name = chat.display_name or "Unknown"
		else:
			name = users.display_name(other_id)
		last = self.state.messages.last(chat.id)
		return schemas.ChatSummary(
			chat_id=chat.id,
			name=name,
			kind=chat.kind,
			participants=list(chat.ordered_participants),
			last_message=schemas.LastMessage(text=last.preview(), timestamp=last.timestamp) if last else None,
			online=bool(other and other.online),
		)

	def _history(self, chat: models.Chat, viewer_id: str) -> List[dict]:
		return [message.to_dict(viewer_id) for message in self.state.messages.list_for(chat.id)]

	def _presence(self, user: models.User, event: str) -> List[Delivery]:
		payload = {"user_id": user.id, "display_name": user.display_name}
		return [
			Delivery(other.connection_handle, event, payload)
			for other in self.state.users.list_online_except(user.id)
			if other.connection_handle
		]

	async def login(self, session: ClientSession, payload: object) -> models.User:
		event = schemas.parse_event(schemas.LoginEvent, payload)
		async with self._lock:
			if session.identified:
				raise policy.InvalidArgument("already_identified")
			user = self.state.users.login_or_resume(event.display_name, session.sid)
			session.user_id = user.id
			chats = [self._summary(chat, user.id).model_dump() for chat in self.state.chats.list_for_user(user.id)]
			deliveries = [
				Delivery(
					session.sid,
					LOGIN_SUCCESS,
					{"user_id": user.id, "display_name": user.display_name, "chats": chats},
				)
			]
			deliveries.extend(self._presence(user, PRESENCE_ONLINE))
			obs_metrics.set_users_online(self.state.users.online_count())
			await self._dispatch(deliveries)
		logger.info("user logged in", extra={"user_id": user.id, "chats": len(chats)})
		return user

	async def list_online_users(self, session: ClientSession) -> List[models.User]:
		async with self._lock:
			user = self._require_user(session)
			online = self.state.users.list_online_except(user.id)
			await self._dispatch([Delivery(session.sid, USERS_LIST, [item.to_dict() for item in online])])
		return online

	async def start_direct_chat(self, session: ClientSession, payload: object) -> models.Chat:
		event = schemas.parse_event(schemas.StartChatEvent, payload)
		async with self._lock:
			user = self._require_user(session)
			target = self.state.users.find(event.target_user_id)
			if target is None:
				raise policy.NotFound("user_not_found")
			known = len(self.state.chats)
			chat = self.state.chats.get_or_create_direct(user.id, target.id)
			if len(self.state.chats) > known:
				obs_metrics.inc_chat_created(chat.kind)
			started = self._summary(chat, user.id).model_dump()
			started["messages"] = self._history(chat, user.id)
			deliveries = [Delivery(session.sid, CHAT_STARTED, started)]
			handle = self.state.users.online_handle(target.id)
			if handle:
				deliveries.append(Delivery(handle, CHAT_NEW, self._summary(chat, target.id).model_dump()))
			await self._dispatch(deliveries)
		return chat

	async def send_message(self, session: ClientSession, payload: object) -> models.Message:
		event = schemas.parse_event(schemas.SendMessageEvent, payload)
		async with self._lock:
			user = self._require_user(session)
			chat = policy.ensure_participant(self.state.chats.get(event.chat_id), user.id)
			attachment = event.file.to_model() if event.file else None
			message = self.state.messages.append(chat.id, user, text=event.text, attachment=attachment)
			handles = self.state.users.online_handles(chat.ordered_participants)
			deliveries = [
				Delivery(handle, CHAT_MESSAGE, {"chat_id": chat.id, "message": message.to_dict(participant_id)})
				for participant_id, handle in handles.items()
			]
			obs_metrics.inc_message_sent(len(deliveries))
			await self._dispatch(deliveries)
		logger.info(
			"message sent",
			extra={"chat_id": chat.id, "message_id": message.id, "recipients": len(deliveries)},
		)
		return message

	async def upload_attachment(self, session: ClientSession, payload: object) -> Optional[models.Attachment]:
		"""Store an uploaded file and reply to the caller with its descriptor.

		Bytes are decoded and written without holding the router lock. Storage
		problems are always reported back with ``chat:upload_error``.
		"""
		event = schemas.parse_event(schemas.UploadFileEvent, payload)
		async with self._lock:
			self._require_user(session)
		try:
			data = decode_base64_payload(event.data)
			attachment = await self.storage.store(data, event.file_name, event.mime_type)
		except policy.ChatPolicyError as exc:
			logger.warning("upload rejected", extra={"code": exc.code, "chat_id": event.chat_id})
			async with self._lock:
				await self._dispatch(
					[Delivery(session.sid, UPLOAD_ERROR, {"chat_id": event.chat_id, "error": exc.detail, "code": exc.code})]
				)
			return None
		async with self._lock:
			await self._dispatch(
				[Delivery(session.sid, FILE_UPLOADED, {"chat_id": event.chat_id, "file": attachment.to_dict()})]
			)
		return attachment

	async def set_typing(self, session: ClientSession, payload: object) -> None:
		event = schemas.parse_event(schemas.TypingEvent, payload)
		async with self._lock:
			user = self._require_user(session)
			chat = policy.ensure_participant(self.state.chats.get(event.chat_id), user.id)
			others = [participant for participant in chat.ordered_participants if participant != user.id]
			notice = {
				"chat_id": chat.id,
				"user_id": user.id,
				"display_name": user.display_name,
				"is_typing": event.is_typing,
			}
			handles = self.state.users.online_handles(others)
			await self._dispatch([Delivery(handle, CHAT_TYPING, notice) for handle in handles.values()])

	async def create_group_chat(self, session: ClientSession, payload: object) -> models.Chat:
		event = schemas.parse_event(schemas.CreateGroupEvent, payload)
		async with self._lock:
			user = self._require_user(session)
			chat = self.state.chats.create_group(user.id, event.name, event.member_ids)
			obs_metrics.inc_chat_created(chat.kind)
			handles = self.state.users.online_handles(chat.ordered_participants)
			deliveries = [
				Delivery(handle, CHAT_NEW, self._summary(chat, participant_id).model_dump())
				for participant_id, handle in handles.items()
			]
			await self._dispatch(deliveries)
		return chat

	async def get_messages(self, session: ClientSession, payload: object) -> List[models.Message]:
		event = schemas.parse_event(schemas.GetMessagesEvent, payload)
		async with self._lock:
			user = self._require_user(session)
			chat = policy.ensure_participant(self.state.chats.get(event.chat_id), user.id)
			messages = self.state.messages.list_for(chat.id)
			await self._dispatch(
				[Delivery(session.sid, CHAT_MESSAGES, {"chat_id": chat.id, "messages": self._history(chat, user.id)})]
			)
		return messages

	async def disconnect(self, session: ClientSession) -> None:
		if not session.identified:
			return
		async with self._lock:
			user = self.state.users.find(session.user_id)
			session.user_id = None
			# A newer connection for the same user keeps them online.
			if user is None or not user.online or user.connection_handle != session.sid:
				return
			self.state.users.mark_offline(user.id)
			obs_metrics.set_users_online(self.state.users.online_count())
			await self._dispatch(self._presence(user, PRESENCE_OFFLINE))
		logger.info("user disconnected", extra={"user_id": user.id})

	async def stats(self) -> models.ChatStats:
		async with self._lock:
			return self.state.stats()

	async def reply_error(self, session: ClientSession, event: str, exc: policy.ChatPolicyError) -> None:
		payload: Dict[str, str] = {"event": event, "code": exc.code, "detail": exc.detail}
		async with self._lock:
			await self._dispatch([Delivery(session.sid, CHAT_ERROR, payload)])
