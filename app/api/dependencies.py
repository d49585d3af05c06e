from __future__ import annotations

import uuid
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core import messages
from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User


# Tokens are issued by the identity provider; tokenUrl only documents the flow
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/token", auto_error=False
)


def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = decode_token(token, expected_type="access")
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_TOKEN_INVALID,
        )

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_TOKEN_PAYLOAD_INVALID,
        )

    try:
        user_uuid = uuid.UUID(user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_USER_ID_INVALID,
        )

    user: User | None = db.query(User).filter(User.id == user_uuid, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_USER_NOT_FOUND_OR_INACTIVE,
        )
    return user


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_db),
) -> User:
    return _user_from_token(token, db)


def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Anonymous callers are allowed through as None; a bad token is still rejected."""
    if token is None:
        return None
    return _user_from_token(token, db)


def get_optional_user_id(user: Annotated[Optional[User], Depends(get_optional_user)]) -> Optional[uuid.UUID]:
    return user.id if user else None
