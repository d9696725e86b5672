import pytest

from app.domain.chat import models
from app.domain.chat.policy import InvalidArgument
from app.domain.chat.registry import ChatRegistry


def test_direct_chat_id_is_order_independent():
	registry = ChatRegistry()
	first = registry.get_or_create_direct("user-b", "user-a")
	second = registry.get_or_create_direct("user-a", "user-b")

	assert first is second
	assert first.id == "user-a-user-b"
	assert first.kind == models.DIRECT
	assert first.participant_ids == frozenset({"user-a", "user-b"})
	assert len(registry) == 1


def test_direct_chat_rejects_self_and_blank():
	registry = ChatRegistry()
	with pytest.raises(InvalidArgument) as excinfo:
		registry.get_or_create_direct("user-a", "user-a")
	assert excinfo.value.code == "cannot_chat_with_self"

	with pytest.raises(InvalidArgument):
		registry.get_or_create_direct("user-a", "")
	assert len(registry) == 0


def test_create_group_includes_creator_once():
	registry = ChatRegistry()
	chat = registry.create_group("alice", " Team ", ["bob", "carol", "bob", "alice"])

	assert chat.kind == models.GROUP
	assert chat.display_name == "Team"
	assert chat.ordered_participants == ("alice", "bob", "carol")
	assert chat.is_group()
	assert registry.get(chat.id) is chat
	assert registry.is_participant(chat.id, "carol")
	assert not registry.is_participant(chat.id, "dave")


def test_group_ids_are_unique_even_for_same_members():
	registry = ChatRegistry()
	one = registry.create_group("alice", "Team", ["bob"])
	two = registry.create_group("alice", "Team", ["bob"])
	assert one.id != two.id
	assert len(registry) == 2


@pytest.mark.parametrize(
	"name, members, code",
	[
		("", ["bob"], "group_name_required"),
		("   ", ["bob"], "group_name_required"),
		("Team", [], "group_members_required"),
		("Team", None, "group_members_required"),
	],
)
def test_create_group_rejects_missing_fields(name, members, code):
	registry = ChatRegistry()
	with pytest.raises(InvalidArgument) as excinfo:
		registry.create_group("alice", name, members)
	assert excinfo.value.code == code
	assert len(registry) == 0


def test_list_for_user_and_unknown_chat():
	registry = ChatRegistry()
	direct = registry.get_or_create_direct("alice", "bob")
	group = registry.create_group("carol", "Ops", ["alice"])

	assert {chat.id for chat in registry.list_for_user("alice")} == {direct.id, group.id}
	assert registry.list_for_user("bob") == [direct]
	assert registry.get("nope") is None
	assert registry.get(None) is None
	assert not registry.is_participant("nope", "alice")
