from typing import Dict, Union


class User:
    """Represents a registered account."""

    def __init__(self, id: int, username: str, password_hash: str, created_time: str):
        self.id = id
        self.username = username
        self.password_hash = password_hash
        self.created_time = created_time

    def to_dict(self) -> Dict[str, Union[int, str]]:
        """Public view of the user; the password hash never leaves the store."""
        return {
            "id": self.id,
            "username": self.username,
            "created_time": self.created_time,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


class Note:
    """Represents a single note object."""

    def __init__(self, id: str, title: str, content: str, created_time: str, updated_time: str):
        self.id = id
        self.title = title
        self.content = content
        self.created_time = created_time
        self.updated_time = updated_time

    def to_dict(self) -> Dict[str, str]:
        """Convert note to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_time": self.created_time,
            "updated_time": self.updated_time
        }


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass


class InvalidInput(AuthError, ValueError):
    """A required field was empty after trimming."""
    pass


class DuplicateUsername(AuthError):
    """The username is already registered."""
    pass


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. Both cases share this error."""
    pass


class Unauthenticated(AuthError):
    """No session, or the session is unknown or destroyed."""
    pass


class NotFound(LookupError):
    """Lookup miss for a user record."""
    pass
