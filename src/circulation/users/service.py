"""User service: register, look up and update users."""

import logging
from typing import Any, Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from ..db.models import User
from ..db.schemas import UserCreate, UserUpdate
from ..db.sqlite import Database, get_db
from ..errors import InvalidInputError, NotFoundError
from ..stores.base import UserStore
from ..stores.sql import SqlUserStore
from ..validation import parse_id, validate_model

logger = logging.getLogger(__name__)


class UserService:
    """Manages library users."""

    def __init__(self, db: Optional[Database] = None, user_store: Optional[UserStore] = None):
        """Initialize user service.

        Args:
            db: Database instance
            user_store: User storage (defaults to SQL storage on ``db``)
        """
        self.db = db or get_db()
        self.users = user_store or SqlUserStore(self.db)

    def register_user(self, data: Union[UserCreate, dict[str, Any]]) -> User:
        """Register a new user.

        Args:
            data: User registration data

        Returns:
            Created user

        Raises:
            InvalidInputError: If a field is invalid or the email is taken
        """
        data = validate_model(UserCreate, data)

        with self.db.get_session() as session:
            if self.users.get_by_email(data.email, session=session) is not None:
                raise InvalidInputError("email", f"{data.email} is already registered")

            user = User(name=data.name, email=data.email, role=data.role.value)
            try:
                stored = self.users.put(user, session=session)
            except IntegrityError as exc:
                # Registered concurrently after the lookup above
                raise InvalidInputError("email", f"{data.email} is already registered") from exc

        logger.info("Registered user %s (%s)", stored.id, stored.role)
        return stored

    def get_user(self, user_id: Union[str, UUID]) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        user_id = parse_id(user_id, "user_id")
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def update_user(
        self,
        user_id: Union[str, UUID],
        data: Union[UserUpdate, dict[str, Any]],
    ) -> User:
        """Replace a user's name, email and role.

        Raises:
            NotFoundError: If the user does not exist
            InvalidInputError: If a field is invalid or the email is taken
        """
        user_id = parse_id(user_id, "user_id")
        data = validate_model(UserUpdate, data)

        with self.db.get_session() as session:
            user = self.users.get(user_id, session=session)
            if user is None:
                raise NotFoundError("user", user_id)

            owner = self.users.get_by_email(data.email, session=session)
            if owner is not None and owner.id != user_id:
                raise InvalidInputError("email", f"{data.email} is already registered")

            user.name = data.name
            user.email = data.email
            user.role = data.role.value
            try:
                stored = self.users.put(user, session=session)
            except IntegrityError as exc:
                raise InvalidInputError("email", f"{data.email} is already registered") from exc

        logger.info("Updated user %s", user_id)
        return stored
