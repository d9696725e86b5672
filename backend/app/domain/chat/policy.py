"""Error taxonomy and membership policy for chat operations."""

from __future__ import annotations

from app.domain.chat import models


class ChatPolicyError(RuntimeError):
	status_code = 400

	def __init__(self, code: str, *, status_code: int | None = None, message: str | None = None) -> None:
		super().__init__(message or code)
		self.code = code
		if status_code is not None:
			self.status_code = status_code
		self.detail = message or code


class InvalidArgument(ChatPolicyError):
	"""Malformed or missing required fields."""

	status_code = 400


class PermissionDenied(ChatPolicyError):
	"""Actor is not a participant of the referenced chat."""

	status_code = 403


class NotFound(ChatPolicyError):
	"""Referenced chat or user does not exist."""

	status_code = 404


class StorageFailure(ChatPolicyError):
	"""Attachment bytes could not be written."""

	status_code = 500


class PayloadTooLarge(ChatPolicyError):
	status_code = 413


class UnsupportedMediaType(ChatPolicyError):
	status_code = 415


def ensure_participant(chat: models.Chat | None, user_id: str) -> models.Chat:
	if chat is None:
		raise NotFound("chat_not_found")
	if not chat.has_participant(user_id):
		raise PermissionDenied("not_a_participant")
	return chat


def require_text(value: str | None, code: str) -> str:
	cleaned = (value or "").strip()
	if not cleaned:
		raise InvalidArgument(code)
	return cleaned
