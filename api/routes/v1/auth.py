"""
api/routes/v1/auth.py -- SSO REST endpoints.

Routes:
  POST /api/v1/auth/login                     -- credentials + app_id -> signed token
  POST /api/v1/auth/register                  -- email + password -> new user id
  GET  /api/v1/auth/users/{user_id}/is-admin  -- admin flag of a user

Handlers are thin: pydantic validates field presence, AuthService decides,
and the AuthError handlers in api/main.py turn raised kinds into status codes.
Handlers are plain `def` so the blocking bcrypt and database work runs in
FastAPI's thread pool rather than on the event loop.

Security:
  Cache-Control: no-store on login responses (tokens must not be cached).
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Request
from fastapi.responses import JSONResponse

from api.models import IsAdminResponse, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate and return a token scoped to body.app_id.

    Wrong password and unknown email produce the same 401 invalid_credentials
    response so the endpoint cannot be used to probe for accounts.
    """
    service = _service(request)
    token = service.login(body.email, body.password, body.app_id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=int(service.token_ttl.total_seconds()),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a user account. 409 if the email is already registered."""
    user_id = _service(request).register_new_user(body.email, body.password)
    return RegisterResponse(user_id=user_id)


@router.get("/auth/users/{user_id}/is-admin", response_model=IsAdminResponse)
def is_admin(request: Request, user_id: int = Path(gt=0)) -> IsAdminResponse:
    """Return whether user_id holds the admin flag. 404 for an unknown user."""
    return IsAdminResponse(is_admin=_service(request).is_admin(user_id))
