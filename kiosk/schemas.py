from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from .models import JournalRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    email: str
    image: str | None = None


class AuthorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    image: str | None = None


class ArticleCreate(BaseModel):
    title: str | None = None
    content: dict[str, Any] | None = None
    thumbnail_url: str | None = None
    # Checked by the publish workflow so 2.5 or "3" are rejected rather than coerced.
    price: Any = None
    journal_id: int | None = None


class ArticleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: dict[str, Any]
    thumbnail_url: str | None = None
    price: int | None = None
    user_id: int
    journal_id: int | None = None
    created_at: datetime
    updated_at: datetime


class ArticleCardOut(BaseModel):
    id: int
    title: str
    excerpt: str
    thumbnail_url: str | None = None
    price: int | None = None
    journal_id: int | None = None
    created_at: datetime
    updated_at: datetime
    author: AuthorOut


class ArticleJournalOut(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: str | None = None


class ArticleViewOut(BaseModel):
    id: int
    title: str
    content: dict[str, Any] | None = None
    thumbnail_url: str | None = None
    price: int | None = None
    created_at: datetime
    updated_at: datetime
    author: AuthorOut
    journal: ArticleJournalOut | None = None
    has_purchased: bool
    is_author: bool
    can_read: bool


class PurchaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    article_id: int
    amount_paid: int
    created_at: datetime


class ImageCreate(BaseModel):
    url: str | None = None
    key: str | None = None


class ImageDelete(BaseModel):
    key: str | None = None


class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    key: str
    user_id: int
    article_id: int | None = None
    created_at: datetime


class JournalCreate(BaseModel):
    name: str | None = None
    description: str | None = None


class JournalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str | None = None
    logo_url: str | None = None
    created_at: datetime
    updated_at: datetime


class MembershipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: JournalRole
    journal: JournalOut


class JournalPageOut(BaseModel):
    journal: JournalOut
    articles: list[ArticleCardOut]


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: JournalRole
    user: UserOut


class MemberAdd(BaseModel):
    journal_id: int
    user_email: str | None = None


class MemberRemove(BaseModel):
    journal_id: int
    member_id: int


class MemberRoleUpdate(BaseModel):
    journal_id: int
    member_id: int
    role: str | None = None


class MemberRoleOut(BaseModel):
    member: MemberOut
    deleted: bool


class CleanupOut(BaseModel):
    message: str
    attempted: int
    deleted: int
    failed_batches: int
    keys: list[str]
