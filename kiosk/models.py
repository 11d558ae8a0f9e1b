import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from .database import Base

jsonb_type = JSONB().with_variant(JSON(), "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JournalRole(str, enum.Enum):
    ADMIN = "ADMIN"
    WRITER = "WRITER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    articles = relationship("Article", back_populates="author", cascade="all, delete-orphan")
    images = relationship("Image", back_populates="owner", cascade="all, delete-orphan")
    memberships = relationship("JournalMember", back_populates="user", cascade="all, delete-orphan")
    purchases = relationship("ArticlePurchase", back_populates="user", cascade="all, delete-orphan")


class Journal(Base):
    __tablename__ = "journals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    logo_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    members = relationship("JournalMember", back_populates="journal", cascade="all, delete-orphan")
    articles = relationship("Article", back_populates="journal", passive_deletes=True)


class JournalMember(Base):
    __tablename__ = "journal_members"
    __table_args__ = (UniqueConstraint("user_id", "journal_id", name="uq_journal_members_user_journal"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    journal_id = Column(Integer, ForeignKey("journals.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(JournalRole, name="journal_role"), nullable=False, default=JournalRole.WRITER)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    user = relationship("User", back_populates="memberships")
    journal = relationship("Journal", back_populates="members")


class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (CheckConstraint("price IS NULL OR (price >= 1 AND price <= 5)", name="ck_articles_price_range"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    journal_id = Column(Integer, ForeignKey("journals.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(jsonb_type, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    price = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    author = relationship("User", back_populates="articles")
    journal = relationship("Journal", back_populates="articles")
    images = relationship("Image", back_populates="article", passive_deletes=True)
    purchases = relationship("ArticlePurchase", back_populates="article", cascade="all, delete-orphan")


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(Text, nullable=False)
    key = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    owner = relationship("User", back_populates="images")
    article = relationship("Article", back_populates="images")


class ArticlePurchase(Base):
    __tablename__ = "article_purchases"
    __table_args__ = (UniqueConstraint("user_id", "article_id", name="uq_article_purchases_user_article"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_paid = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="purchases")
    article = relationship("Article", back_populates="purchases")
