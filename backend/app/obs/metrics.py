"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"chat_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"chat_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"chat_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"chat_socketio_events_total",
	"Socket.IO events handled or emitted per namespace",
	["namespace", "event"],
)

USERS_ONLINE = Gauge(
	"chat_users_online",
	"Users currently marked online",
)

CHATS_CREATED = Counter(
	"chat_chats_created_total",
	"Chats created by kind",
	["kind"],
)

MESSAGES_SENT = Counter(
	"chat_messages_sent_total",
	"Messages appended to a chat log",
)

MESSAGE_FANOUT = Histogram(
	"chat_message_fanout_recipients",
	"Online recipients reached per message",
	buckets=(1, 2, 3, 5, 10, 25, 50, 100),
)

UPLOADS = Counter(
	"chat_uploads_total",
	"Attachment uploads by result",
	["result"],
)

UPLOAD_BYTES = Counter(
	"chat_upload_bytes_total",
	"Attachment bytes written to storage",
)

EVENTS_REJECTED = Counter(
	"chat_events_rejected_total",
	"Client events rejected by the router",
	["event", "code"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def set_users_online(count: int) -> None:
	USERS_ONLINE.set(float(count))


def inc_chat_created(kind: str) -> None:
	CHATS_CREATED.labels(kind=kind).inc()


def inc_message_sent(recipients: int) -> None:
	MESSAGES_SENT.inc()
	MESSAGE_FANOUT.observe(recipients)


def inc_upload(result: str, size_bytes: int = 0) -> None:
	UPLOADS.labels(result=result).inc()
	if size_bytes:
		UPLOAD_BYTES.inc(size_bytes)


def inc_event_rejected(event: str, code: str) -> None:
	EVENTS_REJECTED.labels(event=event, code=code).inc()
