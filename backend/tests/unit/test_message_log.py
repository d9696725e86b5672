import pytest

from app.domain.chat import models
from app.domain.chat.message_log import MessageLog
from app.domain.chat.policy import InvalidArgument


def _user(user_id: str = "alice") -> models.User:
	return models.User(id=user_id, display_name=user_id.title(), connection_handle=None, online=True, created_at=0)


def _attachment() -> models.Attachment:
	return models.Attachment(
		filename="1-2-a.png",
		original_name="a.png",
		mime_type="image/png",
		size=3,
		url="/uploads/1-2-a.png",
	)


def test_append_order_matches_list_order():
	log = MessageLog()
	sender = _user()
	appended = [log.append("chat-1", sender, text=f"m{i}") for i in range(5)]

	listed = log.list_for("chat-1")
	assert [message.id for message in listed] == [message.id for message in appended]
	assert [message.seq for message in listed] == [1, 2, 3, 4, 5]
	timestamps = [message.timestamp for message in listed]
	assert timestamps == sorted(timestamps)
	assert log.last("chat-1") is appended[-1]
	assert log.total() == 5


def test_seq_is_per_chat():
	log = MessageLog()
	sender = _user()
	log.append("chat-1", sender, text="a")
	other = log.append("chat-2", sender, text="b")
	assert other.seq == 1


def test_timestamps_never_go_backwards(monkeypatch):
	log = MessageLog()
	sender = _user()
	clock = iter([2_000, 1_000])
	monkeypatch.setattr(models, "now_ms", lambda: next(clock))

	first = log.append("chat-1", sender, text="a")
	second = log.append("chat-1", sender, text="b")
	assert second.timestamp == first.timestamp == 2_000
	assert second.seq > first.seq


@pytest.mark.parametrize("text", [None, "", "   "])
def test_empty_message_is_rejected_without_append(text):
	log = MessageLog()
	with pytest.raises(InvalidArgument) as excinfo:
		log.append("chat-1", _user(), text=text)
	assert excinfo.value.code == "message_empty"
	assert log.list_for("chat-1") == []
	assert log.total() == 0


def test_attachment_only_message():
	log = MessageLog()
	message = log.append("chat-1", _user(), attachment=_attachment())
	assert message.text is None
	assert message.preview() == "📎 File"
	payload = message.to_dict("bob")
	assert payload["text"] == ""
	assert payload["file"]["original_name"] == "a.png"
	assert payload["sent"] is False
	assert payload["read"] is False


def test_list_for_unknown_chat_is_empty_copy():
	log = MessageLog()
	log.append("chat-1", _user(), text="a")
	snapshot = log.list_for("chat-1")
	snapshot.clear()
	assert len(log.list_for("chat-1")) == 1
	assert log.list_for("missing") == []
	assert log.last("missing") is None
