"""User registration and profile management."""

from .service import UserService

__all__ = ["UserService"]
