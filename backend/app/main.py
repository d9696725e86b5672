"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import socketio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from app.api import ops, uploads
from app.api.errors import install_error_handlers
from app.domain.chat.attachments import AttachmentStorage
from app.domain.chat.service import ChatRouter
from app.domain.chat.sockets import ChatNamespace
from app.obs import init as obs_init
from app.settings import settings

logger = logging.getLogger("chat")


def _allow_origins() -> list[str]:
	allow_origins = list(getattr(settings, "cors_allow_origins", []))
	if not allow_origins:
		allow_origins = ["*"]
	return allow_origins


def _static_root() -> Path | None:
	if not settings.static_dir:
		return None
	root = Path(settings.static_dir).resolve()
	return root if root.is_dir() else None


def create_app(chat_router: ChatRouter | None = None) -> FastAPI:
	"""Build the HTTP app around a chat router.

	The router is stored on ``app.state`` so request handlers and the socket
	namespace share the same in-memory state.
	"""
	router = chat_router or ChatRouter(storage=AttachmentStorage())
	upload_root = router.storage.root

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		upload_root.mkdir(parents=True, exist_ok=True)
		logger.info(
			"chat server starting",
			extra={"upload_dir": str(upload_root), "upload_enabled": router.storage.enabled},
		)
		try:
			yield
		finally:
			logger.info("chat server stopping")

	app = FastAPI(title="Chat Server", lifespan=lifespan)
	app.state.chat_router = router
	install_error_handlers(app)

	allow_origins = _allow_origins()
	# Starlette disallows wildcard '*' with allow_credentials=True.
	app.add_middleware(
		CORSMiddleware,
		allow_origins=allow_origins,
		allow_credentials="*" not in allow_origins,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	obs_init(app)

	app.include_router(ops.router, tags=["ops"])
	app.include_router(uploads.router, tags=["uploads"])

	app.mount(
		settings.upload_url_prefix.rstrip("/") or "/uploads",
		StaticFiles(directory=str(upload_root), check_dir=False),
		name="uploads",
	)
	static_root = _static_root()
	if static_root is not None:
		# Mounted last so API routes win over same-named static files
		app.mount("/", StaticFiles(directory=str(static_root), html=True), name="static")
	return app


# Room for the data: URL prefix, chat id, file name and the packet envelope
PACKET_HEADROOM_BYTES = 64 * 1024


def max_http_buffer_size(upload_max_bytes: int) -> int:
	"""Largest Engine.IO packet accepted, sized so a base64 upload at the
	upload ceiling still arrives and gets a reply instead of a dropped socket.
	"""
	if settings.max_http_buffer_size:
		return settings.max_http_buffer_size
	encoded = 4 * -(-upload_max_bytes // 3)
	return encoded + PACKET_HEADROOM_BYTES


def create_socket_server(chat_router: ChatRouter) -> socketio.AsyncServer:
	allow_origins = _allow_origins()
	sio = socketio.AsyncServer(
		async_mode="asgi",
		cors_allowed_origins="*" if "*" in allow_origins else allow_origins,
		max_http_buffer_size=max_http_buffer_size(chat_router.storage.max_bytes),
	)
	sio.register_namespace(ChatNamespace(chat_router))
	return sio


app = create_app()
sio = create_socket_server(app.state.chat_router)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)


def run() -> None:
	uvicorn.run(socket_app, host=settings.host, port=settings.port)


if __name__ == "__main__":
	run()
