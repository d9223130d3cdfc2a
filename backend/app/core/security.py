from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.user import User


# Tokens are issued by the identity service; this side only validates them.
bearer_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def decode_user_id(token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=str(settings.jwt_issuer),
        )
    except JWTError as e:
        raise HTTPException(status_code=401, detail="invalid token") from e

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="invalid token")

    try:
        return uuid.UUID(str(sub))
    except ValueError as e:
        raise HTTPException(status_code=401, detail="invalid token") from e


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: str = Depends(bearer_scheme),
) -> User:
    if not token:
        token = request.cookies.get("starquiz_token")
    if not token:
        raise HTTPException(status_code=401, detail="not authenticated")

    user_id = decode_user_id(token)

    user = db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise HTTPException(status_code=401, detail="invalid token")

    request.state.user_id = str(user.id)
    return user
