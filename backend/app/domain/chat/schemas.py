"""Pydantic schemas for chat socket events and the upload/status API."""

from __future__ import annotations

from typing import List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from app.domain.chat import models
from app.domain.chat.policy import InvalidArgument


class _Event(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class LoginEvent(_Event):
	display_name: str = Field(..., validation_alias=AliasChoices("display_name", "username"))


class StartChatEvent(_Event):
	target_user_id: str = Field(..., min_length=1)


class AttachmentDescriptor(BaseModel):
	filename: str
	original_name: str
	mime_type: str
	size: int = Field(..., ge=0)
	url: str

	@classmethod
	def from_model(cls, attachment: models.Attachment) -> "AttachmentDescriptor":
		return cls(**attachment.to_dict())

	def to_model(self) -> models.Attachment:
		return models.Attachment(
			filename=self.filename,
			original_name=self.original_name,
			mime_type=self.mime_type,
			size=self.size,
			url=self.url,
		)


class SendMessageEvent(_Event):
	chat_id: str = Field(..., min_length=1)
	text: Optional[str] = None
	file: Optional[AttachmentDescriptor] = Field(default=None, validation_alias=AliasChoices("file", "attachment"))


class UploadFileEvent(_Event):
	chat_id: str = Field(..., min_length=1)
	data: str = Field(..., min_length=1, validation_alias=AliasChoices("data", "file_data"))
	file_name: str = Field(..., min_length=1)
	mime_type: str = Field(default="application/octet-stream", validation_alias=AliasChoices("mime_type", "file_type"))


class TypingEvent(_Event):
	chat_id: str = Field(..., min_length=1)
	is_typing: bool = True


class CreateGroupEvent(_Event):
	name: str = ""
	member_ids: List[str] = Field(default_factory=list, validation_alias=AliasChoices("member_ids", "participant_ids"))


class GetMessagesEvent(_Event):
	chat_id: str = Field(..., min_length=1)


class LastMessage(BaseModel):
	text: str
	timestamp: int


class ChatSummary(BaseModel):
	chat_id: str
	name: str
	kind: str
	participants: List[str]
	last_message: Optional[LastMessage] = None
	online: bool = False
	unread: int = 0


class UploadResponse(BaseModel):
	success: bool = True
	file: AttachmentDescriptor


class StatusResponse(BaseModel):
	status: str = "ok"
	users: int
	chats: int
	messages: int
	upload_enabled: bool


_E = TypeVar("_E", bound=BaseModel)


def parse_event(model: Type[_E], payload: object) -> _E:
	"""Validate a raw socket payload, mapping schema errors to InvalidArgument."""
	try:
		return model.model_validate(payload if isinstance(payload, dict) else {})
	except ValidationError as exc:
		fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
		raise InvalidArgument("invalid_payload", message=f"invalid_payload:{','.join(fields)}") from None
