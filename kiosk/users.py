from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import ValidationError
from .models import User

SEARCH_LIMIT = 20


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_by_name(db: Session, name: str | None) -> list[User]:
    prefix = (name or "").strip()
    if not prefix:
        raise ValidationError("Name query parameter is required.")

    pattern = f"{_escape_like(prefix.lower())}%"
    return list(
        db.scalars(
            select(User)
            .where(func.lower(User.name).like(pattern, escape="\\"))
            .order_by(User.name, User.id)
            .limit(SEARCH_LIMIT)
        )
    )
