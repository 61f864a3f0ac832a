"""Credential store: user identity plus bcrypt password hash.

Users are keyed by lower-cased email so that registration is a single
conditional put (attribute_not_exists) and two concurrent sign-ups for the
same address cannot both succeed. The user-id-index GSI serves lookups by
token subject.
"""

import datetime as dt
import logging
import uuid
from functools import lru_cache
from typing import Any

import bcrypt

from storefront.models.auth import User
from storefront.models.errors import EmailTaken, InvalidCredentials
from storefront.services.dynamodb import DynamoDBService

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> bytes:
    """Hash compared against when the email is unknown, to equalize timing."""
    return bcrypt.hashpw(b"storefront-dummy-password", bcrypt.gensalt(rounds))


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """DynamoDB-backed credential store."""

    USERS_TABLE = "users"
    USER_ID_INDEX = "user-id-index"

    def __init__(self, db: DynamoDBService, bcrypt_rounds: int = 12) -> None:
        """Initialize the store.

        Args:
            db: DynamoDB service
            bcrypt_rounds: bcrypt cost factor (tests use the minimum of 4)
        """
        self._db = db
        self._rounds = bcrypt_rounds

    def create_user(self, email: str, password: str, name: str) -> User:
        """Register a new user.

        Args:
            email: Email address (normalized before storage)
            password: Plain-text password, at most 72 bytes
            name: Display name

        Returns:
            The created User.

        Raises:
            EmailTaken: If the email is already registered.
            ValueError: If the password is longer than bcrypt accepts.
        """
        password_bytes = password.encode("utf-8")
        if len(password_bytes) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        user = User(
            user_id=f"USR-{uuid.uuid4().hex[:16].upper()}",
            email=normalize_email(email),
            name=name.strip(),
            password_hash=bcrypt.hashpw(password_bytes, bcrypt.gensalt(self._rounds)).decode("ascii"),
            created_at=dt.datetime.now(dt.UTC),
        )

        created = self._db.put_item(
            self.USERS_TABLE,
            {
                "email": user.email,
                "user_id": user.user_id,
                "name": user.name,
                "password_hash": user.password_hash,
                "role": user.role,
                "created_at": user.created_at.isoformat(),
            },
            condition_expression="attribute_not_exists(email)",
        )
        if not created:
            raise EmailTaken()

        logger.info("Registered user %s", user.user_id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Check an email/password pair.

        Unknown email and wrong password fail identically, including timing.

        Raises:
            InvalidCredentials: If the pair does not match a user.
        """
        password_bytes = password.encode("utf-8")
        user = self.get_user_by_email(email)

        if len(password_bytes) > MAX_PASSWORD_BYTES:
            raise InvalidCredentials()

        if user is None:
            bcrypt.checkpw(password_bytes, _dummy_hash(self._rounds))
            raise InvalidCredentials()

        if not bcrypt.checkpw(password_bytes, user.password_hash.encode("ascii")):
            raise InvalidCredentials()

        return user

    def get_user_by_email(self, email: str) -> User | None:
        item = self._db.get_item(self.USERS_TABLE, {"email": normalize_email(email)})
        return self._item_to_user(item) if item else None

    def get_user(self, user_id: str) -> User | None:
        """Get a user by ID (token subject) via the user-id-index GSI."""
        items = self._db.query_by_gsi(self.USERS_TABLE, self.USER_ID_INDEX, "user_id", user_id)
        return self._item_to_user(items[0]) if items else None

    @staticmethod
    def _item_to_user(item: dict[str, Any]) -> User:
        return User(
            user_id=item["user_id"],
            email=item["email"],
            name=item.get("name", ""),
            password_hash=item["password_hash"],
            role=item.get("role", "user"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
        )
