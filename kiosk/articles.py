from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from . import images, journals
from .content import content_depth, extract_text, parse_node
from .errors import ForbiddenError, NotFoundError, ValidationError
from .logger import get_logger
from .models import Article
from .purchases import has_purchased

logger = get_logger("articles")

PRICE_CHOICES = (1, 2, 3, 4, 5)
EXCERPT_LENGTH = 200
# Stored bodies go through the JSON encoder, which recurses per level.
MAX_CONTENT_DEPTH = 100


def validate_price(price: Any) -> int | None:
    if price is None:
        return None
    # bool is an int subclass; True is not a price.
    if not isinstance(price, int) or isinstance(price, bool) or price not in PRICE_CHOICES:
        raise ValidationError("Price must be a whole number of dollars between 1 and 5")
    return price


def publish(
    db: Session,
    title: str | None,
    content: dict[str, Any] | None,
    author_id: int,
    thumbnail_url: str | None = None,
    price: Any = None,
    journal_id: int | None = None,
) -> Article:
    """Create an article and link the author's orphan images it references.

    The article row and the image links are committed together.
    """
    if not title or not isinstance(title, str) or not title.strip() or not content:
        raise ValidationError("Missing title or content")
    if content_depth(content) > MAX_CONTENT_DEPTH:
        raise ValidationError(f"Content is nested deeper than {MAX_CONTENT_DEPTH} levels")
    root = parse_node(content)
    if root is None:
        raise ValidationError("Missing title or content")

    price = validate_price(price)

    if journal_id is not None:
        journals.get_journal(db, journal_id)
        if not journals.can_publish(db, author_id, journal_id):
            raise ForbiddenError("You are not a member of this journal")

    article = Article(
        title=title.strip(),
        content=content,
        thumbnail_url=thumbnail_url or None,
        price=price,
        user_id=author_id,
        journal_id=journal_id,
    )
    db.add(article)
    db.flush()

    urls = images.extract_referenced_urls(root)
    if thumbnail_url:
        urls.add(thumbnail_url)
    images.link_to_article(db, urls, author_id, article.id)

    db.commit()
    db.refresh(article)
    logger.info("article_published", article_id=article.id, author_id=author_id, journal_id=journal_id, price=price)
    return article


def get_article(db: Session, article_id: int) -> Article:
    article = db.scalar(
        select(Article)
        .options(joinedload(Article.author), joinedload(Article.journal))
        .where(Article.id == article_id)
    )
    if article is None:
        raise NotFoundError("Article not found")
    return article


def excerpt(article: Article) -> str:
    text = extract_text(parse_node(article.content))
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH].rsplit(" ", 1)[0] + "…"


def get_article_view(db: Session, article_id: int, viewer_id: int | None) -> dict[str, Any]:
    """Load an article for display along with what `viewer_id` may see of it."""
    article = get_article(db, article_id)
    is_author = viewer_id is not None and viewer_id == article.user_id
    purchased = has_purchased(db, viewer_id, article.id)

    journal = None
    if article.journal is not None:
        journal = {
            "id": article.journal.id,
            "name": article.journal.name,
            "slug": article.journal.slug,
            "logo_url": article.journal.logo_url,
        }

    return {
        "id": article.id,
        "title": article.title,
        "content": article.content,
        "thumbnail_url": article.thumbnail_url,
        "price": article.price,
        "created_at": article.created_at,
        "updated_at": article.updated_at,
        "author": {
            "id": article.author.id,
            "name": article.author.name,
            "image": article.author.image,
        },
        "journal": journal,
        "has_purchased": purchased,
        "is_author": is_author,
        "can_read": article.price is None or is_author or purchased,
    }


def _listing(db: Session, *criteria, limit: int | None = None) -> list[Article]:
    stmt = select(Article).options(joinedload(Article.author)).order_by(Article.created_at.desc(), Article.id.desc())
    if criteria:
        stmt = stmt.where(*criteria)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def list_by_author(db: Session, author_id: int) -> list[Article]:
    return _listing(db, Article.user_id == author_id)


def list_by_journal(db: Session, journal_id: int) -> list[Article]:
    return _listing(db, Article.journal_id == journal_id)


def list_latest(db: Session, limit: int = 20) -> list[Article]:
    return _listing(db, limit=limit)


def card(article: Article) -> dict[str, Any]:
    return {
        "id": article.id,
        "title": article.title,
        "excerpt": excerpt(article),
        "thumbnail_url": article.thumbnail_url,
        "price": article.price,
        "journal_id": article.journal_id,
        "created_at": article.created_at,
        "updated_at": article.updated_at,
        "author": {
            "id": article.author.id,
            "name": article.author.name,
            "image": article.author.image,
        },
    }
