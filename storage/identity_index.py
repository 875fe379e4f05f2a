# storage/identity_index.py

import logging
from typing import Dict, List, Optional

import pydantic

from schemas.user_schema import InsertUser, Role, UserInDB, default_permissions
from storage.entity_store import EntityStore
from storage.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def email_key(email: str) -> str:
    return email.strip().lower()


def clean_user_changes(data: dict) -> dict:
    """Drop the id and blank identity fields; reject fields a user does not have."""
    changes = {key: value for key, value in data.items() if key != "id"}
    unknown = set(changes) - set(UserInDB.model_fields)
    if unknown:
        raise ValidationError(f"Unknown user field(s): {', '.join(sorted(unknown))}")
    # identity fields can be changed but never blanked
    for key in ("username", "email", "password"):
        if key in changes and not changes[key]:
            del changes[key]
    if "role" in changes:
        try:
            changes["role"] = Role(changes["role"])
        except ValueError as exc:
            raise ValidationError(f"Unknown role: {changes['role']}") from exc
    return changes


class IdentityIndex:
    """
    User records plus the username -> id and email -> id lookup maps.

    Emails are indexed lower-cased so uniqueness and lookup are
    case-insensitive, matching what the database backend does with LOWER().
    """

    def __init__(self):
        self.users: EntityStore[UserInDB] = EntityStore(
            UserInDB, "User", required=("username", "email", "password")
        )
        self._by_username: Dict[str, int] = {}
        self._by_email: Dict[str, int] = {}

    def create_user(self, data: InsertUser) -> UserInDB:
        fields = data.model_dump()
        username, email = fields.get("username"), fields.get("email")
        if username and username in self._by_username:
            raise ConflictError("username", username)
        if email and email_key(email) in self._by_email:
            raise ConflictError("email", email)

        defaults = default_permissions(fields["role"])
        for flag, value in defaults.items():
            if fields.get(flag) is None:
                fields[flag] = value

        user = self.users.create(**fields)
        self._by_username[user.username] = user.id
        self._by_email[email_key(user.email)] = user.id
        return user

    def update_user(self, user_id: int, data: dict) -> UserInDB:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        data = clean_user_changes(data)

        new_username = data.get("username")
        username_changes = bool(new_username) and new_username != user.username
        if username_changes and self._by_username.get(new_username, user_id) != user_id:
            raise ConflictError("username", new_username)

        new_email = data.get("email")
        email_changes = bool(new_email) and email_key(new_email) != email_key(user.email)
        if email_changes and self._by_email.get(email_key(new_email), user_id) != user_id:
            raise ConflictError("email", new_email)

        # validated before the swap, so a rejected change cannot leave a stale key behind
        self.users.merge(user_id, **data)
        if username_changes:
            del self._by_username[user.username]
            self._by_username[new_username] = user_id
        if email_changes:
            del self._by_email[email_key(user.email)]
            self._by_email[email_key(new_email)] = user_id

        return self.users.update(user_id, **data)

    def get(self, user_id: int) -> Optional[UserInDB]:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[UserInDB]:
        user_id = self._by_username.get(username)
        return self.users.get(user_id) if user_id is not None else None

    def get_by_email(self, email: str) -> Optional[UserInDB]:
        user_id = self._by_email.get(email_key(email))
        return self.users.get(user_id) if user_id is not None else None

    def get_by_email_and_role(self, email: str, role: str) -> Optional[UserInDB]:
        # O(n) scan; fine for a few thousand users
        wanted = email_key(email)
        for user in self.users.all():
            if email_key(user.email) == wanted and user.role == role:
                logger.debug("Found user %s (id %s) for email %s and role %s", user.username, user.id, email, role)
                return user
        logger.debug("No user with email %s and role %s", email, role)
        return None

    def get_many(self, ids: List[int]) -> List[UserInDB]:
        found = (self.users.get(user_id) for user_id in ids)
        return [user for user in found if user is not None]


def apply_user_changes(user: UserInDB, changes: dict) -> UserInDB:
    """The user as it would be after `changes`; ValidationError if that is not a valid user."""
    try:
        return UserInDB.model_validate({**user.model_dump(), **changes})
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid User: {exc.errors()[0]['msg']}") from exc
