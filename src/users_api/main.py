import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from fastapi import APIRouter, Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from users_api import config
from users_api.db import Database
from users_api.errors import APIError, AuthenticationError, NotFoundError
from users_api.schemas import (
    APIMessage,
    CreatedResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserCreate,
    UserProfile,
    UserRecord,
    UserUpdate,
)
from users_api.security import create_user_access_token, get_current_user, hash_password, verify_password
from users_api.users import UserStore, get_user_store

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service health checks."},
    {"name": "Users", "description": "Admin CRUD on user rows."},
    {"name": "Auth", "description": "Register/login and current user."},
]

_error_responses = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

router = APIRouter(responses=_error_responses)


def _profile(user: Dict[str, Any]) -> UserProfile:
    return UserProfile(id=user["id"], name=user["name"], email=user["email"])


@router.get("/", tags=["Health"], summary="Health check")
def health_check() -> Dict[str, str]:
    """Health check endpoint used by the frontend to verify backend availability."""
    return {"message": "Healthy"}


@router.get("/test", tags=["Health"], summary="Reachability check")
def reachability_check() -> Dict[str, str]:
    return {"message": "Server is running and accessible!"}


# =========================
# Users
# =========================

@router.get("/users", response_model=List[UserRecord], tags=["Users"], summary="List users")
def list_users(store: UserStore = Depends(get_user_store)) -> List[Dict[str, Any]]:
    """Return every user row, including its password hash column."""
    return store.list_users()


@router.post("/users", response_model=CreatedResponse, tags=["Users"], summary="Add user")
def add_user(payload: UserCreate, store: UserStore = Depends(get_user_store)) -> CreatedResponse:
    """
    Admin-only insertion of a user row.

    No password is accepted or stored, so users created here cannot log in
    until they are registered through /register.
    """
    user_id = store.create_user(payload.name, payload.email)
    return CreatedResponse(message="User added", id=user_id)


@router.put(
    "/users/{user_id}",
    response_model=APIMessage,
    tags=["Users"],
    summary="Update user",
    responses={404: {"model": ErrorResponse}},
)
def update_user(
    payload: UserUpdate,
    user_id: int = Path(..., description="User id"),
    store: UserStore = Depends(get_user_store),
) -> APIMessage:
    """Set name and email of an existing user."""
    if not store.update_user(user_id, payload.name, payload.email):
        raise NotFoundError("User not found")
    return APIMessage(message="User updated")


@router.delete(
    "/users/{user_id}",
    response_model=APIMessage,
    tags=["Users"],
    summary="Delete user",
    responses={404: {"model": ErrorResponse}},
)
def delete_user(
    user_id: int = Path(..., description="User id"),
    store: UserStore = Depends(get_user_store),
) -> APIMessage:
    """Remove a user by id."""
    if not store.delete_user(user_id):
        raise NotFoundError("User not found")
    return APIMessage(message="User deleted")


# =========================
# Auth
# =========================

@router.post("/register", response_model=CreatedResponse, tags=["Auth"], summary="Register")
def register(payload: RegisterRequest, store: UserStore = Depends(get_user_store)) -> CreatedResponse:
    """Create a user with a bcrypt-hashed password."""
    user_id = store.create_user(payload.name, payload.email, hash_password(payload.password))
    logger.info("Registered user %s", payload.email)
    return CreatedResponse(message="User registered successfully", id=user_id)


@router.post(
    "/login",
    response_model=LoginResponse,
    tags=["Auth"],
    summary="Login",
    responses={401: {"model": ErrorResponse}},
)
def login(payload: LoginRequest, store: UserStore = Depends(get_user_store)) -> LoginResponse:
    """Authenticate user and return an access token with the public profile."""
    user = store.get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("password_hash")):
        logger.info("Rejected login for %s", payload.email)
        raise AuthenticationError("Invalid credentials")

    token = create_user_access_token(user["id"], user["email"])
    logger.info("Login successful for %s", user["email"])
    return LoginResponse(token=token, user=_profile(user))


@router.get(
    "/me",
    response_model=UserProfile,
    tags=["Auth"],
    summary="Get current user",
    responses={401: {"model": ErrorResponse}},
)
def me(user: Dict[str, Any] = Depends(get_current_user)) -> UserProfile:
    """Return the profile of the user named by the bearer token."""
    return _profile(user)


# =========================
# Error handling
# =========================

def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def _api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _error(exc.status_code, exc.message, headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return _error(status.HTTP_400_BAD_REQUEST, "Missing or invalid fields: " + ", ".join(fields))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


# =========================
# Application
# =========================

@asynccontextmanager
async def _lifespan(app: FastAPI):
    try:
        app.state.db.open()
    except psycopg2.Error:
        # keep serving; the pool opens on first use once the store is back
        logger.exception("Database unavailable at startup")
    try:
        yield
    finally:
        app.state.db.close()


# PUBLIC_INTERFACE
def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the FastAPI application around a (lazily connected) Database."""
    app = FastAPI(
        title="Users API",
        description=(
            "User CRUD plus register/login issuing a signed, one-hour JWT.\n\n"
            "Auth: Use the `Authorization: Bearer <token>` header for /me."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=_lifespan,
    )
    app.state.db = database or Database()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    app.add_exception_handler(APIError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(router)
    return app


config.configure_logging()
app = create_app()
