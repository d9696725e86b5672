import pytest

from app.domain.chat.identity import IdentityRegistry
from app.domain.chat.policy import InvalidArgument


def test_same_display_name_resumes_one_identity():
	registry = IdentityRegistry()
	first = registry.login_or_resume("alice", "sid-1")
	second = registry.login_or_resume("alice", "sid-2")

	assert first.id == second.id
	assert len(registry) == 1
	assert registry.find(first.id).connection_handle == "sid-2"
	assert registry.online_handle(first.id) == "sid-2"


def test_display_name_is_trimmed_and_required():
	registry = IdentityRegistry()
	user = registry.login_or_resume("  bob ", "sid-1")
	assert user.display_name == "bob"
	assert registry.find(user.id) is user

	with pytest.raises(InvalidArgument) as excinfo:
		registry.login_or_resume("   ", "sid-2")
	assert excinfo.value.code == "display_name_required"
	assert len(registry) == 1


def test_mark_offline_keeps_stale_handle_but_hides_it():
	registry = IdentityRegistry()
	alice = registry.login_or_resume("alice", "sid-a")
	bob = registry.login_or_resume("bob", "sid-b")

	registry.mark_offline(alice.id)

	assert alice.online is False
	assert alice.connection_handle == "sid-a"
	assert registry.online_handle(alice.id) is None
	assert registry.online_handles([alice.id, bob.id]) == {bob.id: "sid-b"}
	assert registry.online_count() == 1


def test_list_online_except_excludes_self_and_offline():
	registry = IdentityRegistry()
	alice = registry.login_or_resume("alice", "sid-a")
	bob = registry.login_or_resume("bob", "sid-b")
	carol = registry.login_or_resume("carol", "sid-c")
	registry.mark_offline(carol.id)

	assert [user.id for user in registry.list_online_except(alice.id)] == [bob.id]


def test_find_unknown_user():
	registry = IdentityRegistry()
	assert registry.find("missing") is None
	assert registry.find(None) is None
	assert registry.mark_offline("missing") is None
	assert registry.display_name("missing") == "Unknown"
