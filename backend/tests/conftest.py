import sys
from pathlib import Path
from typing import Any, List, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from app.domain.chat.attachments import AttachmentStorage
from app.domain.chat.service import ChatRouter, ClientSession
from app.main import create_app
from app.settings import settings


class RecordingTransport:
	"""Transport double that keeps every delivery in order."""

	def __init__(self) -> None:
		self.deliveries: List[Tuple[str, str, Any]] = []

	async def send(self, handle: str, event: str, payload: Any) -> None:
		self.deliveries.append((handle, event, payload))

	def events(self, handle: str, event: str | None = None) -> List[Any]:
		return [
			payload
			for target, name, payload in self.deliveries
			if target == handle and (event is None or name == event)
		]

	def names(self, handle: str) -> List[str]:
		return [name for target, name, _ in self.deliveries if target == handle]

	def clear(self) -> None:
		self.deliveries.clear()


@pytest.fixture(autouse=True)
def force_test_settings():
	original_replies = settings.chat_error_replies
	original_metrics_public = settings.obs_metrics_public
	settings.chat_error_replies = True
	settings.obs_metrics_public = True
	try:
		yield
	finally:
		settings.chat_error_replies = original_replies
		settings.obs_metrics_public = original_metrics_public


@pytest.fixture
def upload_root(tmp_path):
	return tmp_path / "uploads"


@pytest.fixture
def storage(upload_root):
	return AttachmentStorage(upload_root, max_bytes=1024, url_prefix="/uploads", enabled=True)


@pytest.fixture
def transport():
	return RecordingTransport()


@pytest.fixture
def chat_router(transport, storage):
	return ChatRouter(transport, storage=storage)


@pytest.fixture
def login(chat_router):
	"""Log a display name in on a fresh connection and return its session."""

	async def _login(display_name: str, sid: str | None = None) -> ClientSession:
		session = ClientSession(sid=sid or f"sid-{display_name}")
		await chat_router.login(session, {"display_name": display_name})
		return session

	return _login


@pytest.fixture
def app(chat_router):
	return create_app(chat_router)


@pytest_asyncio.fixture
async def api_client(app):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
