"""Image lifecycle: uploads start as orphans and become linked on publish.

An image is an orphan while it has no article. Only orphans are ever linked,
deleted by their owner, or reclaimed by the sweep; `orphan_clause` and
`is_orphan` are the single definition of that state.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .content import ContentNode, extract_image_urls
from .errors import ConflictError, ForbiddenError, NotFoundError, UpstreamError, ValidationError
from .logger import get_logger
from .models import Image
from .storage import Storage

logger = get_logger("images")


def orphan_clause():
    return Image.article_id.is_(None)


def is_orphan(image: Image) -> bool:
    return image.article_id is None


def record_upload(db: Session, url: str | None, key: str | None, owner_id: int) -> Image:
    if not url or not key:
        raise ValidationError("Missing url or key")

    image = Image(url=url, key=key, user_id=owner_id, article_id=None)
    db.add(image)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Image key already recorded") from exc
    db.refresh(image)
    logger.info("image_recorded", image_id=image.id, owner_id=owner_id)
    return image


def list_owned(db: Session, owner_id: int) -> list[Image]:
    return list(
        db.scalars(select(Image).where(Image.user_id == owner_id).order_by(Image.created_at.desc(), Image.id.desc()))
    )


def extract_referenced_urls(root: ContentNode | None) -> set[str]:
    return extract_image_urls(root)


def link_to_article(db: Session, urls: Iterable[str], owner_id: int, article_id: int) -> int:
    """Attach the owner's orphan images with a matching url to `article_id`.

    Does not commit; publish links inside its own transaction.
    """
    wanted = sorted(set(urls))
    if not wanted:
        return 0

    result = db.execute(
        update(Image)
        .where(Image.url.in_(wanted), Image.user_id == owner_id, orphan_clause())
        .values(article_id=article_id)
        .execution_options(synchronize_session=False)
    )
    linked = result.rowcount or 0
    logger.info("images_linked", article_id=article_id, owner_id=owner_id, linked=linked, referenced=len(wanted))
    return linked


def delete_owned(db: Session, storage: Storage, key: str | None, requester_id: int) -> None:
    if not key:
        raise ValidationError("Missing key")

    image = db.scalar(select(Image).where(Image.key == key))
    if image is None:
        raise NotFoundError("Image not found")
    if image.user_id != requester_id:
        raise ForbiddenError("Forbidden")
    if not is_orphan(image):
        raise ConflictError("Image is attached to an article")

    # The storage copy goes first; the row is the only handle left to retry with.
    result = storage.delete_files([key])
    if not result.success:
        logger.warning("image_delete_unconfirmed", key=key)
        raise UpstreamError("Storage did not confirm deletion")

    db.delete(image)
    db.commit()
    logger.info("image_deleted", key=key, owner_id=requester_id)


@dataclass(slots=True)
class SweepReport:
    attempted: int = 0
    deleted: int = 0
    failed_batches: int = 0
    deleted_keys: list[str] = field(default_factory=list)


def find_stale_orphans(db: Session, cutoff: datetime) -> list[Image]:
    return list(
        db.scalars(select(Image).where(orphan_clause(), Image.created_at < cutoff).order_by(Image.created_at, Image.id))
    )


def sweep_orphans(
    db: Session,
    storage: Storage,
    retention: timedelta,
    now: datetime | None = None,
    batch_size: int = 100,
) -> SweepReport:
    """Delete orphan images older than `retention` from storage, then from the database.

    A batch's rows are removed only when storage confirms every key in it.
    A storage transport failure stops the sweep; batches already committed stay.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - retention
    report = SweepReport()

    stale = find_stale_orphans(db, cutoff)
    if not stale:
        logger.info("orphan_sweep_complete", attempted=0, deleted=0)
        return report

    batch_size = max(1, batch_size)
    for start in range(0, len(stale), batch_size):
        batch = stale[start : start + batch_size]
        keys = [image.key for image in batch]
        report.attempted += len(keys)

        result = storage.delete_files(keys)
        if not result.success:
            report.failed_batches += 1
            logger.warning("orphan_sweep_batch_unconfirmed", attempted=len(keys), failed=len(result.failed))
            continue

        ids = [image.id for image in batch]
        # Re-check orphan state so an image linked since the query survives.
        deleted = db.execute(
            delete(Image).where(Image.id.in_(ids), orphan_clause()).execution_options(synchronize_session=False)
        )
        db.commit()
        report.deleted += deleted.rowcount or 0
        report.deleted_keys.extend(keys)

    logger.info(
        "orphan_sweep_complete",
        attempted=report.attempted,
        deleted=report.deleted,
        failed_batches=report.failed_batches,
    )
    return report
