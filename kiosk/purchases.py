from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictError, NotFoundError, ValidationError
from .logger import get_logger
from .models import Article, ArticlePurchase

logger = get_logger("purchases")


def has_purchased(db: Session, user_id: int | None, article_id: int) -> bool:
    if user_id is None:
        return False
    return (
        db.scalar(
            select(ArticlePurchase.id).where(ArticlePurchase.user_id == user_id, ArticlePurchase.article_id == article_id)
        )
        is not None
    )


def record_purchase(db: Session, user_id: int, article_id: int, amount_paid: int) -> ArticlePurchase:
    """Append a purchase to the ledger; a second purchase of the same article is rejected."""
    if not isinstance(amount_paid, int) or isinstance(amount_paid, bool) or amount_paid < 0:
        raise ValidationError("amountPaid must be a non-negative integer")
    if db.get(Article, article_id) is None:
        raise NotFoundError("Article not found")
    if has_purchased(db, user_id, article_id):
        raise ConflictError("Article already purchased")

    purchase = ArticlePurchase(user_id=user_id, article_id=article_id, amount_paid=amount_paid)
    db.add(purchase)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Article already purchased") from exc
    db.refresh(purchase)
    logger.info("article_purchased", article_id=article_id, user_id=user_id, amount_paid=amount_paid)
    return purchase


def purchase_article(db: Session, user_id: int, article_id: int) -> ArticlePurchase:
    """Record a purchase at the article's current price."""
    article = db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article not found")
    if article.price is None:
        raise ValidationError("Article is free")
    if article.user_id == user_id:
        raise ValidationError("Authors cannot purchase their own articles")
    return record_purchase(db, user_id, article_id, article.price)
