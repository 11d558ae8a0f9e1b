"""Identity comes from the auth proxy in front of the API.

The proxy authenticates the session and forwards the user id in `X-User-Id`;
these dependencies only resolve that id to a `User` row.
"""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .database import get_db
from .errors import UnauthorizedError
from .models import User


def _resolve(db: Session, raw_id: str | None) -> User | None:
    if not raw_id:
        return None
    try:
        user_id = int(raw_id)
    except ValueError:
        return None
    return db.get(User, user_id)


def current_user(x_user_id: str | None = Header(default=None), db: Session = Depends(get_db)) -> User:
    user = _resolve(db, x_user_id)
    if user is None:
        raise UnauthorizedError("Unauthorized")
    return user


def optional_user(x_user_id: str | None = Header(default=None), db: Session = Depends(get_db)) -> User | None:
    return _resolve(db, x_user_id)
