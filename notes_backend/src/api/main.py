import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware

from src.api.auth import BearerTokenAuthenticator, get_current_user, login_user, register_user
from src.api.config import Settings, configure_logging, get_settings
from src.api.database import Database
from src.api.errors import InvalidRequestError, NotFoundOrNotOwnedError, register_exception_handlers
from src.api.models import User
from src.api.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    NoteCreateRequest,
    NoteResponse,
    NoteUpdateRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)
from src.api.storage import NoteStorage, get_storage

logger = logging.getLogger(__name__)

auth_router = APIRouter()
notes_router = APIRouter()


def parse_priority(value: str) -> int:
    """Parse the ?priority= filter, which must be an integer from 1 to 5."""
    try:
        priority = int(value)
    except ValueError:
        priority = 0
    if not 1 <= priority <= 5:
        raise InvalidRequestError(
            [{"field": "priority", "message": "Priority must be an integer from 1 to 5 or 'all'"}]
        )
    return priority


# -------- Auth Routes --------

# PUBLIC_INTERFACE
@auth_router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(payload: RegisterRequest, request: Request, storage: NoteStorage = Depends(get_storage)):
    """
    Register a new user and return it with an access token.

    Raises:
        400 if the email is already in use or the body is invalid.
    """
    user, token = register_user(storage, request.app.state.authenticator, payload)
    return AuthResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
        token=token,
    )


# PUBLIC_INTERFACE
@auth_router.post("/login", response_model=AuthResponse, summary="Login and obtain a JWT access token")
def login(payload: LoginRequest, request: Request, storage: NoteStorage = Depends(get_storage)):
    """
    Login with email and password.

    Raises:
        404 if no user has this email, 401 on a wrong password.
    """
    user, token = login_user(storage, request.app.state.authenticator, payload)
    return AuthResponse(message="Login successful", user=UserResponse.model_validate(user), token=token)


# PUBLIC_INTERFACE
@auth_router.get("/user", response_model=UserResponse, summary="Get the current user")
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return UserResponse.model_validate(current_user)


# PUBLIC_INTERFACE
@auth_router.put("/user", response_model=UserResponse, summary="Update the current user's profile")
def update_current_user(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    storage: NoteStorage = Depends(get_storage),
):
    """Update profile fields of the authenticated user. Omitted fields stay as they are."""
    user = storage.upsert_user({"id": current_user.id, **payload.model_dump(exclude_none=True)})
    return UserResponse.model_validate(user)


# -------- Notes Routes --------

# PUBLIC_INTERFACE
@notes_router.get("", response_model=List[NoteResponse], summary="List, search or filter notes")
def list_notes(
    search: Optional[str] = Query(None, description="Case-insensitive text to match in title or description"),
    priority: Optional[str] = Query(None, description="Priority 1-5, or 'all'"),
    current_user: User = Depends(get_current_user),
    storage: NoteStorage = Depends(get_storage),
):
    """
    List notes belonging to the current user, newest first.

    search takes precedence over priority when both are given.
    """
    if search:
        notes = storage.search_user_notes(current_user.id, search)
    elif priority and priority != "all":
        notes = storage.filter_user_notes_by_priority(current_user.id, parse_priority(priority))
    else:
        notes = storage.get_user_notes(current_user.id)
    return [NoteResponse.model_validate(n) for n in notes]


# PUBLIC_INTERFACE
@notes_router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new note",
)
def create_note(
    payload: NoteCreateRequest,
    current_user: User = Depends(get_current_user),
    storage: NoteStorage = Depends(get_storage),
):
    """
    Create a new note for the authenticated user.

    Body:
        title: note title
        description: note body
        priority: 1..5
    """
    note = storage.create_note(current_user.id, payload.model_dump())
    return NoteResponse.model_validate(note)


# PUBLIC_INTERFACE
@notes_router.put("/{note_id}", response_model=NoteResponse, summary="Update a note by ID")
def update_note(
    note_id: str,
    payload: NoteUpdateRequest,
    current_user: User = Depends(get_current_user),
    storage: NoteStorage = Depends(get_storage),
):
    """
    Update a note. Only the owner can modify it; anyone else gets the same 404
    as for a missing note.
    """
    note = storage.update_note(note_id, current_user.id, payload.model_dump(exclude_none=True))
    if note is None:
        raise NotFoundOrNotOwnedError()
    return NoteResponse.model_validate(note)


# PUBLIC_INTERFACE
@notes_router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a note by ID")
def delete_note(
    note_id: str,
    current_user: User = Depends(get_current_user),
    storage: NoteStorage = Depends(get_storage),
):
    """
    Delete a note. Only the owner can delete it.
    """
    if not storage.delete_note(note_id, current_user.id):
        raise NotFoundOrNotOwnedError()
    return None


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the notes API.

    The database handle and authenticator are created here and kept on
    app.state for the lifetime of the application.
    """
    settings = settings or get_settings()
    database = Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if settings.secret_key_is_generated:
            # tokens signed with a generated secret do not survive a restart
            logger.warning("SECRET_KEY is not set; using a random per-process secret")
        database.create_all()
        logger.info("Notes API started")
        yield
        database.dispose()

    app = FastAPI(
        title="Notes API",
        description="Notes application backend API with JWT auth and CRUD for personal notes.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Service health and status."},
            {"name": "Auth", "description": "User registration and authentication."},
            {"name": "Notes", "description": "CRUD, search and priority filtering for notes."},
        ],
    )
    app.state.settings = settings
    app.state.database = database
    app.state.authenticator = BearerTokenAuthenticator.from_settings(settings)

    # CORS setup - allow frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/", response_model=MessageResponse, tags=["Health"], summary="Health Check")
    def health_check():
        """
        Health check endpoint.

        Returns:
            JSON object indicating service status.
        """
        return {"message": "Healthy"}

    app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(notes_router, prefix="/api/notes", tags=["Notes"])
    return app


app = create_app()
