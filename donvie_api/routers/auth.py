"""Auth endpoints for local email/password accounts.

Endpoints:
- POST /api/auth/register: signup (optionally with an association), logs in
- POST /api/auth/login: email/password login, sets the session cookie
- GET  /api/auth/user: current user (cookie session or external Bearer JWT)
- GET|POST /api/logout: revoke the session and clear the cookie

SECURITY:
- Session cookie is httponly, SameSite=Lax, Secure in production
- Only the HMAC of the session token is stored
- Passwords are never logged
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from donvie_api.auth.identity import IdentityResolver, require_principal
from donvie_api.auth.principal import Principal
from donvie_api.auth.session_store import get_session_store
from donvie_api.config.env import get_session_cookie_name, get_session_days, is_cookie_secure
from donvie_api.db.models import User
from donvie_api.db.repo_users import UserRepository
from donvie_api.db.session import get_db
from donvie_api.errors import user_not_found
from donvie_api.schemas import LoginRequest, MessageResponse, RegisterRequest, UserOut

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


def _start_session(request: Request, response: Response, user: User, db: Session) -> None:
    raw_token = get_session_store(db).issue(user.id, user_agent=request.headers.get("User-Agent"))
    response.set_cookie(
        key=get_session_cookie_name(),
        value=raw_token,
        max_age=get_session_days() * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=is_cookie_secure(),
        path="/",
    )


@router.post("/auth/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Create a local account and log it in.

    Raises:
        409: Email already registered
        400: Invalid payload, or userType/association mismatch
    """
    user = IdentityResolver(db).register_local_user(body)
    _start_session(request, response, user, db)
    return user


@router.post("/auth/login", response_model=UserOut)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user = IdentityResolver(db).authenticate_local(body.email, body.password)
    _start_session(request, response, user, db)
    logger.info("Local login succeeded", extra={"event": "auth.login.success"})
    return user


@router.get("/auth/user", response_model=UserOut)
def current_user(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    user = UserRepository(db).get_by_id(principal.id)
    if user is None:
        raise user_not_found(principal.id)
    return user


@router.api_route("/logout", methods=["GET", "POST"], response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Revoke the current session (if any) and clear the cookie. Always 200."""
    cookie_name = get_session_cookie_name()
    raw_token = request.cookies.get(cookie_name)
    if raw_token:
        get_session_store(db).revoke(raw_token)
    response.delete_cookie(key=cookie_name, path="/")
    return MessageResponse(message="Logged out")
