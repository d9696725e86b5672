"""Attachment storage for chat file sharing."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import random
import re
from pathlib import Path, PurePath
from typing import Optional

from app.domain.chat import models
from app.domain.chat.policy import (
	ChatPolicyError,
	InvalidArgument,
	PayloadTooLarge,
	StorageFailure,
	UnsupportedMediaType,
)
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset(
	{".jpeg", ".jpg", ".png", ".gif", ".pdf", ".doc", ".docx", ".txt", ".zip", ".mp4", ".mp3", ".webm"}
)
ALLOWED_MIME_TYPES = frozenset(
	{
		"image/jpeg",
		"image/png",
		"image/gif",
		"application/pdf",
		"application/msword",
		"application/vnd.openxmlformats-officedocument.wordprocessingml.document",
		"text/plain",
		"application/zip",
		"application/x-zip-compressed",
		"video/mp4",
		"audio/mpeg",
		"audio/mp3",
		"video/webm",
		"audio/webm",
	}
)
ALLOWED_TYPES_LABEL = "images, PDF, DOC, TXT, ZIP, MP4, MP3, WEBM"
_DATA_URL_PREFIX = re.compile(r"^data:.*?;base64,")
_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\- ]")


def _safe_original_name(file_name: str) -> str:
	name = PurePath(file_name.replace("\\", "/")).name
	name = _UNSAFE_NAME_CHARS.sub("_", name).strip()
	if not name or name in {".", ".."}:
		raise InvalidArgument("file_name_required")
	return name


def decode_base64_payload(data: str) -> bytes:
	"""Decode a base64 body, tolerating a ``data:<mime>;base64,`` prefix."""
	try:
		return base64.b64decode(_DATA_URL_PREFIX.sub("", data), validate=False)
	except (binascii.Error, ValueError):
		raise InvalidArgument("invalid_file_data") from None


class AttachmentStorage:
	"""Stores uploaded bytes on local disk and hands back a descriptor.

	Validation mirrors the upload endpoint: a fixed size ceiling and an
	allow-list matched against both the file extension and the MIME type.
	"""

	def __init__(
		self,
		root: str | Path | None = None,
		*,
		max_bytes: Optional[int] = None,
		url_prefix: Optional[str] = None,
		enabled: Optional[bool] = None,
	) -> None:
		self.root = Path(root if root is not None else settings.upload_dir).resolve()
		self.max_bytes = max_bytes if max_bytes is not None else settings.upload_max_bytes
		self.url_prefix = (url_prefix if url_prefix is not None else settings.upload_url_prefix).rstrip("/")
		self.enabled = settings.upload_enabled if enabled is None else enabled

	def validate(self, file_name: str, mime_type: str, size: int) -> str:
		if not self.enabled:
			raise StorageFailure("uploads_disabled", status_code=503)
		name = _safe_original_name(file_name)
		if size > self.max_bytes:
			raise PayloadTooLarge(
				"file_too_large",
				message=f"File too large. Maximum size is {self.max_bytes // 1024 // 1024}MB",
			)
		extension = PurePath(name).suffix.lower()
		media_type = (mime_type or "").split(";", 1)[0].strip().lower()
		if extension not in ALLOWED_EXTENSIONS or media_type not in ALLOWED_MIME_TYPES:
			raise UnsupportedMediaType(
				"unsupported_media_type",
				message=f"Invalid file type. Allowed types: {ALLOWED_TYPES_LABEL}",
			)
		return name

	def make_filename(self, original_name: str) -> str:
		return f"{models.now_ms()}-{random.randint(0, 999_999_999)}-{original_name}"

	def url_for(self, filename: str) -> str:
		return f"{self.url_prefix}/{filename}"

	def _write(self, target: Path, data: bytes) -> None:
		self.root.mkdir(parents=True, exist_ok=True)
		target.write_bytes(data)

	async def store(self, data: bytes, file_name: str, mime_type: str) -> models.Attachment:
		"""Validate and persist ``data``; the write runs in a worker thread."""
		try:
			original_name = self.validate(file_name, mime_type, len(data))
		except ChatPolicyError as exc:
			obs_metrics.inc_upload(exc.code)
			raise
		filename = self.make_filename(original_name)
		target = self.root / filename
		try:
			await asyncio.to_thread(self._write, target, data)
		except OSError as exc:
			obs_metrics.inc_upload("storage_failure")
			logger.error("attachment write failed", extra={"stored_name": filename, "error": str(exc)})
			raise StorageFailure("storage_failure", message="Failed to upload file") from exc
		obs_metrics.inc_upload("ok", len(data))
		logger.info("attachment stored", extra={"stored_name": filename, "size": len(data), "mime_type": mime_type})
		return models.Attachment(
			filename=filename,
			original_name=original_name,
			mime_type=mime_type,
			size=len(data),
			url=self.url_for(filename),
		)
