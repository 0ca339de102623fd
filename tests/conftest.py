import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from notes_website.backend.config import Settings
from notes_website.backend.main import create_app
from notes_website.backend.services import AccessGateway, CredentialStore, NoteStore, SessionRegistry


@pytest.fixture
def hasher() -> PasswordHasher:
    """Cheapest Argon2 parameters so the suite stays fast."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def credentials(hasher: PasswordHasher) -> CredentialStore:
    return CredentialStore(hasher)


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def store() -> NoteStore:
    return NoteStore()


@pytest.fixture
def gateway(credentials: CredentialStore, sessions: SessionRegistry, store: NoteStore) -> AccessGateway:
    return AccessGateway(credentials=credentials, sessions=sessions, store=store)


@pytest.fixture
def settings() -> Settings:
    return Settings(session_cookie_name="notes.sid", cookie_secure=False)


@pytest.fixture
def app(settings: Settings, gateway: AccessGateway):
    return create_app(settings, gateway)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
