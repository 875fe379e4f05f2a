import pytest

from schemas.message_schema import MessageGroupOut, MessageOut
from storage.entity_store import EntityStore
from storage.errors import NotFoundError, ValidationError


@pytest.fixture
def messages():
    return EntityStore(MessageOut, "Message", required=("content",))


def test_ids_start_at_one_and_increase(messages):
    first = messages.create(from_user_id=1, to_user_id=2, content="hi")
    second = messages.create(from_user_id=2, to_user_id=1, content="hello")
    assert (first.id, second.id) == (1, 2)
    assert first.created_at is not None


def test_ids_are_not_reused_after_delete(messages):
    first = messages.create(from_user_id=1, to_user_id=2, content="hi")
    messages.delete(first.id)
    second = messages.create(from_user_id=1, to_user_id=2, content="again")
    assert second.id == 2
    assert first.id not in messages
    assert len(messages) == 1


def test_missing_required_field(messages):
    with pytest.raises(ValidationError, match="Content is required"):
        messages.create(from_user_id=1, to_user_id=2, content="")
    assert len(messages) == 0


def test_invalid_record_is_a_storage_validation_error(messages):
    with pytest.raises(ValidationError):
        messages.create(from_user_id="not a number", to_user_id=2, content="hi")
    # a rejected record does not consume an id
    assert messages.create(from_user_id=1, to_user_id=2, content="hi").id == 1


def test_update_returns_new_record_and_leaves_old_one(messages):
    original = messages.create(from_user_id=1, to_user_id=2, content="hi")
    updated = messages.update(original.id, read=True, id=99)
    assert updated.read is True
    assert updated.id == original.id
    assert original.read is False
    assert messages.get(original.id) == updated


def test_update_unknown_id(messages):
    with pytest.raises(NotFoundError):
        messages.update(42, read=True)


def test_filter_and_all(messages):
    messages.create(from_user_id=1, to_user_id=2, content="a")
    messages.create(from_user_id=2, to_user_id=1, content="b")
    messages.create(from_user_id=1, to_user_id=3, content="c")
    assert [m.content for m in messages.filter(lambda m: m.from_user_id == 1)] == ["a", "c"]
    assert len(messages.all()) == 3


def test_multiple_timestamps_share_one_instant():
    groups = EntityStore(MessageGroupOut, "Message group", timestamps=("created_at", "updated_at"))
    group = groups.create(name="Board")
    assert group.created_at == group.updated_at


def test_update_with_invalid_value_keeps_stored_record(messages):
    original = messages.create(from_user_id=1, to_user_id=2, content="hi")
    with pytest.raises(ValidationError):
        messages.update(original.id, read="not sure")
    with pytest.raises(ValidationError):
        messages.merge(original.id, from_user_id="nobody")
    assert messages.get(original.id) == original


def test_merge_does_not_store(messages):
    original = messages.create(from_user_id=1, to_user_id=2, content="hi")
    merged = messages.merge(original.id, content="edited")
    assert merged.content == "edited"
    assert messages.get(original.id).content == "hi"
