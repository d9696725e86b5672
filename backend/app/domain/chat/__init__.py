"""Chat domain exports."""

from .attachments import AttachmentStorage
from .policy import ChatPolicyError
from .service import ChatRouter, ChatState, ClientSession, Transport

__all__ = [
	"AttachmentStorage",
	"ChatPolicyError",
	"ChatRouter",
	"ChatState",
	"ClientSession",
	"Transport",
]
