"""
Auth router: token endpoint plus the dependencies every admin route uses.

The lifecycle core never authenticates; routes resolve the caller here and
hand it on as an Actor.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.models.user import User, UserRole
from marketadmin.schemas.auth import TokenResponse, UserMeResponse
from marketadmin.security import create_access_token, decode_access_token, verify_password
from marketadmin.services.context import Actor

router = APIRouter(prefix="/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


# ── Dependencies ──────────────────────────────────────────────────────────────


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload["user_id"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise credentials_exc

    user = db.get(User, user_id)
    if user is None or user.is_deleted or not user.is_active:
        raise credentials_exc
    return user


def require_role(*roles: str):
    """Dependency factory: raises 403 if the user doesn't have one of the required roles."""

    def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {list(roles)}",
            )
        return current_user

    return _check


def get_admin_actor(current_user: User = Depends(require_role(UserRole.ADMIN))) -> Actor:
    return Actor.from_user(current_user)


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/token", response_model=TokenResponse)
def login(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Exchange email + password for a JWT access token."""
    email = form.username.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(form.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.is_deleted or not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    access_token = create_access_token(
        {"sub": user.email, "user_id": str(user.id), "role": user.role}
    )
    return TokenResponse(access_token=access_token, role=user.role)


@router.get("/me", response_model=UserMeResponse)
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
