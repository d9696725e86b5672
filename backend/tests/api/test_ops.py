import pytest

from app.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	response = await api_client.get("/health/live")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_status_reports_counts(api_client, chat_router, login):
	alice = await login("alice")
	bob = await login("bob")
	chat = await chat_router.start_direct_chat(alice, {"target_user_id": bob.user_id})
	await chat_router.send_message(alice, {"chat_id": chat.id, "text": "hi"})

	response = await api_client.get("/api/health")

	assert response.status_code == 200
	assert response.json() == {
		"status": "ok",
		"users": 2,
		"chats": 1,
		"messages": 1,
		"upload_enabled": True,
	}
	assert response.headers.get("x-request-id")


@pytest.mark.asyncio
async def test_metrics_public(api_client):
	response = await api_client.get("/metrics")
	assert response.status_code == 200
	assert "chat_messages_sent_total" in response.text


@pytest.mark.asyncio
async def test_metrics_require_admin_token_when_private(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

	denied = await api_client.get("/metrics", headers={"X-Admin-Token": "wrong"})
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"Authorization": "Bearer secret-token"})
	assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_metrics_fail_closed_without_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", None)

	response = await api_client.get("/metrics", headers={"X-Admin-Token": "anything"})
	assert response.status_code == 403
	assert response.json()["detail"] == "admin_token_not_configured"
