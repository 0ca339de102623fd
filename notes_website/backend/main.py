import logging
from typing import Optional

from argon2 import PasswordHasher
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .domain import DuplicateUsername, InvalidCredentials, InvalidInput, Unauthenticated
from .models import MessageResponse, NoteData, NoteResponse, NotesListResponse, UserCreds, UserResponse
from .services import AccessGateway, CredentialStore
from .utils import time_now

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gateway(request: Request) -> AccessGateway:
    return request.app.state.gateway


def get_session_id(request: Request, authorization: Optional[str] = Header(None)) -> Optional[str]:
    """
    Session token for the request.

    A Bearer Authorization header wins, then the session cookie. Any other
    Authorization value is taken as a bare token only when there is no cookie.
    """
    if authorization and authorization.startswith("Bearer "):
        return authorization
    cookie = request.cookies.get(request.app.state.settings.session_cookie_name)
    return cookie or authorization


def _set_session_cookie(request: Request, response: Response, session_id: str) -> None:
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )


@router.get("/")
async def read_root():
    return {"message": "Notes API is running"}


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    creds: UserCreds,
    request: Request,
    response: Response,
    gateway: AccessGateway = Depends(get_gateway),
):
    try:
        user_id, session_id = await gateway.register(creds.username, creds.password)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateUsername as e:
        raise HTTPException(status_code=409, detail=str(e))
    _set_session_cookie(request, response, session_id)
    user = gateway.credentials.find_by_id(user_id)
    return UserResponse(success=True, user=user.to_dict(), message="Registered")


@router.post("/login", response_model=UserResponse)
async def login(
    creds: UserCreds,
    request: Request,
    response: Response,
    gateway: AccessGateway = Depends(get_gateway),
):
    try:
        user_id, session_id = await gateway.login(creds.username, creds.password)
    except InvalidCredentials as e:
        raise HTTPException(status_code=401, detail=str(e))
    _set_session_cookie(request, response, session_id)
    user = gateway.credentials.find_by_id(user_id)
    return UserResponse(success=True, user=user.to_dict(), message="Logged in")


@router.api_route("/logout", methods=["GET", "POST"], response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    success = gateway.logout(session_id)
    response.delete_cookie(request.app.state.settings.session_cookie_name, path="/")
    return MessageResponse(
        success=success,
        message="Logged out successfully" if success else "Already logged out",
    )


@router.post("/logout/all", response_model=MessageResponse)
async def logout_everywhere(
    request: Request,
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    count = gateway.logout_everywhere(session_id)
    response.delete_cookie(request.app.state.settings.session_cookie_name, path="/")
    return MessageResponse(success=True, message=f"Logged out of {count} sessions")


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    user = gateway.current_user(session_id)
    return UserResponse(success=True, user=user.to_dict())


@router.get("/notes", response_model=NotesListResponse)
async def list_notes(
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    notes = [n.to_dict() for n in gateway.list_notes(session_id)]
    return NotesListResponse(success=True, notes=notes, count=len(notes))


@router.post("/notes", response_model=NoteResponse)
async def add_note(
    note: NoteData,
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    index = gateway.add_note(session_id, note.title, note.content)
    if index is None:
        return NoteResponse(success=False, message="Empty note ignored")
    response.status_code = 201
    created = gateway.get_note(session_id, index)
    return NoteResponse(success=True, index=index, note=created.to_dict(), message="Note created")


@router.get("/notes/{index}", response_model=NoteResponse)
async def get_note(
    index: int,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    note = gateway.get_note(session_id, index)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse(success=True, index=index, note=note.to_dict())


@router.put("/notes/{index}", response_model=MessageResponse)
async def edit_note(
    index: int,
    note: NoteData,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    success = gateway.edit_note(session_id, index, note.title, note.content)
    return MessageResponse(success=success, message="Note updated" if success else "Nothing to update")


@router.delete("/notes/{index}", response_model=MessageResponse)
async def delete_note(
    index: int,
    session_id: Optional[str] = Depends(get_session_id),
    gateway: AccessGateway = Depends(get_gateway),
):
    success = gateway.delete_note(session_id, index)
    return MessageResponse(success=success, message="Note deleted" if success else "Nothing to delete")


@router.get("/health")
async def health_check(gateway: AccessGateway = Depends(get_gateway)):
    return {"status": "healthy", "timestamp": time_now(), **gateway.stats()}


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


def build_gateway(settings: Settings) -> AccessGateway:
    hasher = PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )
    return AccessGateway(credentials=CredentialStore(hasher))


def create_app(settings: Optional[Settings] = None, gateway: Optional[AccessGateway] = None) -> FastAPI:
    """Build the app around a fresh in-memory gateway unless one is given."""
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_title,
        description="A simple notes application with user authentication",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.gateway = gateway or build_gateway(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("error handling %s %s", request.method, request.url.path)
            raise
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Notes API starting on http://%s:%s", settings.host, settings.port)
    uvicorn.run(
        "notes_website.backend.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
