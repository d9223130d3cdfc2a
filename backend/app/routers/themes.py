from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.security import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.theme import ThemeCompletionResponse
from app.services.themes import get_theme_completion

router = APIRouter(prefix="/themes", tags=["themes"])


@router.get("/{theme_id}/completion", response_model=ThemeCompletionResponse)
def theme_completion(theme_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        tid = uuid.UUID(theme_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="invalid theme_id") from e

    return get_theme_completion(db, theme_id=tid, user_id=user.id).as_dict()
