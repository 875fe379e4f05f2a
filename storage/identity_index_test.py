import pytest

from schemas.user_schema import InsertUser, Role
from storage.errors import ConflictError, NotFoundError, ValidationError
from storage.identity_index import IdentityIndex, clean_user_changes


def new_user(username, email, **fields):
    return InsertUser(username=username, email=email, password="hash", **fields)


@pytest.fixture
def index():
    return IdentityIndex()


def test_create_and_look_up(index):
    user = index.create_user(new_user("alice", "Alice@Example.com"))
    assert index.get_by_username("alice") == user
    assert index.get_by_email("alice@example.com") == user
    assert index.get_by_username("Alice") is None


def test_duplicate_username_or_email(index):
    index.create_user(new_user("alice", "alice@example.com"))
    with pytest.raises(ConflictError, match="Username already exists"):
        index.create_user(new_user("alice", "other@example.com"))
    with pytest.raises(ConflictError, match="Email already exists"):
        index.create_user(new_user("bob", "ALICE@example.com"))
    assert len(index.users) == 1


def test_missing_identity_field(index):
    with pytest.raises(ValidationError):
        index.create_user(InsertUser(username="alice", email="alice@example.com"))
    assert index.get_by_username("alice") is None


def test_role_defaults_permissions(index):
    chair = index.create_user(new_user("chair", "chair@example.com", role=Role.COMMITTEE_CHAIR))
    member = index.create_user(new_user("member", "member@example.com"))
    custom = index.create_user(new_user("custom", "custom@example.com", can_manage_workshops=True))
    assert chair.can_manage_committees and chair.can_manage_workshops
    assert not member.can_manage_committees and not member.can_manage_workshops
    assert custom.can_manage_workshops


def test_update_moves_index_entries(index):
    user = index.create_user(new_user("alice", "alice@example.com"))
    index.update_user(user.id, {"username": "alice2", "email": "alice2@example.com"})
    assert index.get_by_username("alice") is None
    assert index.get_by_email("alice@example.com") is None
    assert index.get_by_username("alice2").id == user.id
    assert index.get_by_email("ALICE2@example.com").id == user.id


def test_update_conflict_changes_nothing(index):
    alice = index.create_user(new_user("alice", "alice@example.com"))
    index.create_user(new_user("bob", "bob@example.com"))
    with pytest.raises(ConflictError):
        index.update_user(alice.id, {"username": "alice2", "email": "bob@example.com"})
    assert index.get_by_username("alice").id == alice.id
    assert index.get_by_username("alice2") is None
    assert index.get(alice.id).email == "alice@example.com"


def test_update_to_own_values_is_not_a_conflict(index):
    alice = index.create_user(new_user("alice", "alice@example.com"))
    updated = index.update_user(alice.id, {"username": "alice", "email": "ALICE@example.com", "first_name": "A"})
    assert updated.first_name == "A"
    assert index.get_by_email("alice@example.com").id == alice.id


def test_update_unknown_user(index):
    with pytest.raises(NotFoundError):
        index.update_user(7, {"first_name": "X"})


def test_get_by_email_and_role(index):
    index.create_user(new_user("admin", "admin@example.com", role=Role.ADMIN))
    assert index.get_by_email_and_role("Admin@example.com", Role.ADMIN).username == "admin"
    assert index.get_by_email_and_role("admin@example.com", Role.USER) is None


def test_get_many_skips_unknown_ids(index):
    a = index.create_user(new_user("a", "a@example.com"))
    b = index.create_user(new_user("b", "b@example.com"))
    assert [u.id for u in index.get_many([b.id, 99, a.id])] == [b.id, a.id]


def test_clean_user_changes():
    assert clean_user_changes({"id": 3, "username": "", "first_name": "Z", "role": "admin"}) == {
        "first_name": "Z", "role": Role.ADMIN,
    }
    with pytest.raises(ValidationError):
        clean_user_changes({"favourite_colour": "blue"})
    with pytest.raises(ValidationError):
        clean_user_changes({"role": "emperor"})
