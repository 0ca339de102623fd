import asyncio
import itertools
import logging
import secrets
from typing import Callable, Dict, List, Optional, Set, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from .domain import (
    DuplicateUsername,
    InvalidCredentials,
    InvalidInput,
    Note,
    NotFound,
    Unauthenticated,
    User,
)
from .utils import escape_markup, make_id, time_now

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


class CredentialStore:
    """
    Holds user records and their Argon2id password hashes.

    Users are indexed by username for login and by id for reverse lookup
    when a session is resolved. Hashing and verification run in a worker
    thread so the event loop keeps serving other requests meanwhile.
    """

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self.hasher = hasher or PasswordHasher()
        self.users: Dict[str, User] = {}
        self.users_by_id: Dict[int, User] = {}
        # usernames whose registration is waiting on the hasher
        self._pending: Set[str] = set()
        self._ids = itertools.count(1)
        # verified against when the username is unknown so both login failures cost the same
        self._dummy_hash = self.hasher.hash(secrets.token_hex(16))

    def __len__(self) -> int:
        return len(self.users)

    async def register(self, username: str, password: str) -> int:
        """
        Create a user and return its id.

        Raises:
            InvalidInput: username or password is empty after trimming
            DuplicateUsername: the trimmed username is taken or being registered
        """
        username = (username or "").strip()
        password = password or ""
        if not username or not password.strip():
            raise InvalidInput("Missing username or password")
        if username in self.users or username in self._pending:
            raise DuplicateUsername("Username already exists")

        self._pending.add(username)
        try:
            password_hash = await asyncio.to_thread(self.hasher.hash, password)
        finally:
            self._pending.discard(username)

        user = User(next(self._ids), username, password_hash, time_now())
        self.users[username] = user
        self.users_by_id[user.id] = user
        logger.info("Registered user id=%s", user.id)
        return user.id

    async def authenticate(self, username: str, password: str) -> int:
        """Return the id of the user matching the credentials or raise InvalidCredentials."""
        user = self.users.get((username or "").strip())
        password_hash = user.password_hash if user else self._dummy_hash
        ok = await asyncio.to_thread(self._verify, password_hash, password or "")
        if user is None or not ok:
            logger.warning("Failed login attempt")
            raise InvalidCredentials("Invalid username or password")
        return user.id

    def _verify(self, password_hash: str, password: str) -> bool:
        try:
            return self.hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def find_by_id(self, user_id: int) -> User:
        user = self.users_by_id.get(user_id)
        if user is None:
            raise NotFound(f"No user with id {user_id}")
        return user



class SessionRegistry:
    """Maps opaque session tokens to user ids."""

    def __init__(self):
        self.active: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.active)

    def create(self, user_id: int) -> str:
        # other sessions of the same user stay valid
        token = secrets.token_urlsafe(32)
        self.active[token] = user_id
        return token

    def resolve(self, session_id: Optional[str]) -> Optional[int]:
        if not session_id:
            return None
        return self.active.get(session_id)

    def destroy(self, session_id: Optional[str]) -> bool:
        """Drop a session. Returns False if it was already gone."""
        if not session_id:
            return False
        return self.active.pop(session_id, None) is not None

    def destroy_user_sessions(self, user_id: int) -> int:
        tokens = [token for token, owner in self.active.items() if owner == user_id]
        for token in tokens:
            del self.active[token]
        return len(tokens)


class NoteStore:
    """
    Per-user ordered note collections, addressed by position.

    Title and content go through ``sanitize`` before they are stored, so
    stored text never carries live markup. Out of range positions are
    ignored rather than reported. Each note also keeps a stable id, and the
    ``*_by_id`` methods address notes by it instead of by position.
    """

    def __init__(self, sanitize: Callable[[str], str] = escape_markup):
        self.sanitize = sanitize
        self.notes: Dict[int, List[Note]] = {}

    def create_collection(self, user_id: int) -> None:
        self.notes.setdefault(user_id, [])

    def list_notes(self, user_id: int) -> List[Note]:
        return list(self.notes.get(user_id, []))

    def count(self, user_id: int) -> int:
        return len(self.notes.get(user_id, []))

    def add_note(self, user_id: int, title: str, content: str) -> Optional[int]:
        """Append a note and return its index, or None when both fields are empty."""
        title = self.sanitize(title)
        content = self.sanitize(content)
        if not title and not content:
            return None
        notes = self.notes.setdefault(user_id, [])
        now = time_now()
        notes.append(Note(make_id("note"), title or UNTITLED, content, now, now))
        return len(notes) - 1

    def get_by_index(self, user_id: int, index: int) -> Optional[Note]:
        notes = self.notes.get(user_id, [])
        if not _in_bounds(notes, index):
            return None
        return notes[index]

    def edit_by_index(self, user_id: int, index: int, title: str, content: str) -> bool:
        notes = self.notes.get(user_id, [])
        if not _in_bounds(notes, index):
            return False
        notes[index] = self._revise(notes[index], title, content)
        return True

    def delete_by_index(self, user_id: int, index: int) -> bool:
        notes = self.notes.get(user_id, [])
        if not _in_bounds(notes, index):
            return False
        del notes[index]
        return True

    def get_by_id(self, user_id: int, note_id: str) -> Optional[Note]:
        index = self._index_of(user_id, note_id)
        return None if index is None else self.notes[user_id][index]

    def edit_by_id(self, user_id: int, note_id: str, title: str, content: str) -> bool:
        index = self._index_of(user_id, note_id)
        return index is not None and self.edit_by_index(user_id, index, title, content)

    def delete_by_id(self, user_id: int, note_id: str) -> bool:
        index = self._index_of(user_id, note_id)
        return index is not None and self.delete_by_index(user_id, index)

    def _index_of(self, user_id: int, note_id: str) -> Optional[int]:
        for index, note in enumerate(self.notes.get(user_id, [])):
            if note.id == note_id:
                return index
        return None

    def _revise(self, note: Note, title: str, content: str) -> Note:
        # a new object, so snapshots handed out by list_notes keep their values
        return Note(
            note.id,
            self.sanitize(title) or UNTITLED,
            self.sanitize(content),
            note.created_time,
            time_now(),
        )


def _in_bounds(notes: List[Note], index: int) -> bool:
    return isinstance(index, int) and 0 <= index < len(notes)


def _bare_token(session_id: Optional[str]) -> Optional[str]:
    """Drop a 'Bearer ' prefix, as sent in HTTP Authorization headers."""
    if session_id and session_id.startswith("Bearer "):
        return session_id[7:]
    return session_id


class AccessGateway:
    """
    Main app logic: binds a session token to a user and that user's notes.

    Every note operation resolves the session first, so a caller can only
    ever reach the collection of the user its session belongs to.
    """

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        sessions: Optional[SessionRegistry] = None,
        store: Optional[NoteStore] = None,
    ):
        self.credentials = credentials or CredentialStore()
        self.sessions = sessions or SessionRegistry()
        self.store = store or NoteStore()

    def authorize(self, session_id: Optional[str]) -> int:
        user_id = self.sessions.resolve(_bare_token(session_id))
        if user_id is None:
            raise Unauthenticated("Invalid or expired session")
        return user_id

    async def register(self, username: str, password: str) -> Tuple[int, str]:
        """Create the account, its empty note collection and a first session."""
        user_id = await self.credentials.register(username, password)
        self.store.create_collection(user_id)
        return user_id, self.sessions.create(user_id)

    async def login(self, username: str, password: str) -> Tuple[int, str]:
        user_id = await self.credentials.authenticate(username, password)
        logger.info("User id=%s logged in", user_id)
        return user_id, self.sessions.create(user_id)

    def logout(self, session_id: Optional[str]) -> bool:
        session_id = _bare_token(session_id)
        user_id = self.sessions.resolve(session_id)
        removed = self.sessions.destroy(session_id)
        if removed:
            logger.info("User id=%s logged out", user_id)
        return removed

    def logout_everywhere(self, session_id: Optional[str]) -> int:
        """Destroy every session of the caller's user, the calling one included."""
        user_id = self.authorize(session_id)
        count = self.sessions.destroy_user_sessions(user_id)
        logger.info("User id=%s logged out of %s sessions", user_id, count)
        return count

    def current_user(self, session_id: Optional[str]) -> User:
        return self.credentials.find_by_id(self.authorize(session_id))

    def list_notes(self, session_id: Optional[str]) -> List[Note]:
        return self.store.list_notes(self.authorize(session_id))

    def add_note(self, session_id: Optional[str], title: str, content: str = "") -> Optional[int]:
        return self.store.add_note(self.authorize(session_id), title, content)

    def get_note(self, session_id: Optional[str], index: int) -> Optional[Note]:
        return self.store.get_by_index(self.authorize(session_id), index)

    def edit_note(self, session_id: Optional[str], index: int, title: str, content: str = "") -> bool:
        return self.store.edit_by_index(self.authorize(session_id), index, title, content)

    def delete_note(self, session_id: Optional[str], index: int) -> bool:
        return self.store.delete_by_index(self.authorize(session_id), index)

    def get_note_by_id(self, session_id: Optional[str], note_id: str) -> Optional[Note]:
        return self.store.get_by_id(self.authorize(session_id), note_id)

    def edit_note_by_id(self, session_id: Optional[str], note_id: str, title: str, content: str = "") -> bool:
        return self.store.edit_by_id(self.authorize(session_id), note_id, title, content)

    def delete_note_by_id(self, session_id: Optional[str], note_id: str) -> bool:
        return self.store.delete_by_id(self.authorize(session_id), note_id)

    def stats(self) -> Dict[str, int]:
        return {"users_count": len(self.credentials), "active_sessions": len(self.sessions)}
