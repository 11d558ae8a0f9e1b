"""Journals and their role-gated membership.

A journal exists only while it has at least one ADMIN. The only way to reach
zero admins is `change_role`, which deletes the journal in the same
transaction (memberships removed, articles kept but detached).
"""

import re
import time

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .logger import get_logger
from .models import Article, Journal, JournalMember, JournalRole, User

logger = get_logger("journals")

PUBLISHING_ROLES = (JournalRole.ADMIN, JournalRole.WRITER)

# Path segments under /api/journals that a journal page cannot take.
RESERVED_SLUGS = frozenset({"members"})
FALLBACK_SLUG = "journal"


def slugify(name: str) -> str:
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while number:
        number, remainder = divmod(number, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def unique_slug(db: Session, name: str) -> str:
    slug = slugify(name) or FALLBACK_SLUG
    if slug not in RESERVED_SLUGS and db.scalar(select(Journal.id).where(Journal.slug == slug)) is None:
        return slug

    # Millisecond timestamp, bumped until free so repeats within one ms differ.
    stamp = time.time_ns() // 1_000_000
    candidate = f"{slug}-{_base36(stamp)}"
    while db.scalar(select(Journal.id).where(Journal.slug == candidate)) is not None:
        stamp += 1
        candidate = f"{slug}-{_base36(stamp)}"
    return candidate


def create_journal(db: Session, name: str | None, description: str | None, creator_id: int) -> Journal:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Journal name is required")

    journal = Journal(
        name=name.strip(),
        slug=unique_slug(db, name),
        description=(description or "").strip() or None,
    )
    journal.members.append(JournalMember(user_id=creator_id, role=JournalRole.ADMIN))
    db.add(journal)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Journal slug already exists") from exc
    db.refresh(journal)
    logger.info("journal_created", journal_id=journal.id, slug=journal.slug, creator_id=creator_id)
    return journal


def get_journal(db: Session, journal_id: int) -> Journal:
    journal = db.get(Journal, journal_id)
    if journal is None:
        raise NotFoundError("Journal not found")
    return journal


def get_journal_by_slug(db: Session, slug: str) -> Journal:
    journal = db.scalar(select(Journal).where(Journal.slug == slug))
    if journal is None:
        raise NotFoundError("Journal not found")
    return journal


def get_membership(db: Session, user_id: int, journal_id: int) -> JournalMember | None:
    return db.scalar(
        select(JournalMember).where(JournalMember.user_id == user_id, JournalMember.journal_id == journal_id)
    )


def require_admin(db: Session, user_id: int, journal_id: int, message: str = "Only journal admins can do this") -> JournalMember:
    membership = get_membership(db, user_id, journal_id)
    if membership is None or membership.role != JournalRole.ADMIN:
        raise ForbiddenError(message)
    return membership


def can_publish(db: Session, user_id: int, journal_id: int) -> bool:
    membership = get_membership(db, user_id, journal_id)
    return membership is not None and membership.role in PUBLISHING_ROLES


def list_memberships(db: Session, user_id: int) -> list[JournalMember]:
    return list(
        db.scalars(
            select(JournalMember)
            .options(joinedload(JournalMember.journal))
            .where(JournalMember.user_id == user_id)
            .order_by(JournalMember.created_at.desc(), JournalMember.id.desc())
        )
    )


def list_members(db: Session, journal_id: int, by: int) -> list[JournalMember]:
    require_admin(db, by, journal_id, "Only journal admins can view members")
    return list(
        db.scalars(
            select(JournalMember)
            .options(joinedload(JournalMember.user))
            .where(JournalMember.journal_id == journal_id)
            .order_by(JournalMember.created_at.asc(), JournalMember.id.asc())
        )
    )


def add_member(db: Session, journal_id: int, email: str | None, by: int) -> JournalMember:
    if not email:
        raise ValidationError("journalId and userEmail are required")
    require_admin(db, by, journal_id, "Only journal admins can add members")

    target = db.scalar(select(User).where(User.email == email))
    if target is None:
        raise NotFoundError("User not found with that email")
    if get_membership(db, target.id, journal_id) is not None:
        raise ConflictError("User is already a member of this journal")

    member = JournalMember(user_id=target.id, journal_id=journal_id, role=JournalRole.WRITER)
    db.add(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User is already a member of this journal") from exc
    db.refresh(member)
    logger.info("journal_member_added", journal_id=journal_id, user_id=target.id, by=by)
    return member


def _member_in_journal(db: Session, journal_id: int, member_id: int) -> JournalMember:
    member = db.get(JournalMember, member_id)
    if member is None or member.journal_id != journal_id:
        raise NotFoundError("Member not found")
    return member


def remove_member(db: Session, journal_id: int, member_id: int, by: int) -> None:
    admin = require_admin(db, by, journal_id, "Only journal admins can remove members")
    if member_id == admin.id:
        raise ValidationError("Admins cannot remove themselves")

    member = _member_in_journal(db, journal_id, member_id)
    db.delete(member)
    db.commit()
    logger.info("journal_member_removed", journal_id=journal_id, member_id=member_id, by=by)


def _delete_journal(db: Session, journal_id: int) -> None:
    db.execute(delete(JournalMember).where(JournalMember.journal_id == journal_id))
    db.execute(update(Article).where(Article.journal_id == journal_id).values(journal_id=None))
    db.execute(delete(Journal).where(Journal.id == journal_id))


def change_role(db: Session, journal_id: int, member_id: int, role: str | JournalRole | None, by: int) -> tuple[JournalMember, bool]:
    """Set a member's role; returns the member and whether the journal was deleted.

    Demoting the last admin (including the caller demoting themselves) deletes
    the journal in the same commit.
    """
    try:
        new_role = JournalRole(role)
    except ValueError as exc:
        raise ValidationError("Role must be ADMIN or WRITER") from exc

    require_admin(db, by, journal_id, "Only journal admins can change roles")
    member = _member_in_journal(db, journal_id, member_id)
    member.user  # load before a possible expunge
    member.role = new_role
    db.flush()

    admin_count = db.scalar(
        select(func.count(JournalMember.id)).where(
            JournalMember.journal_id == journal_id, JournalMember.role == JournalRole.ADMIN
        )
    )
    deleted = admin_count == 0
    if deleted:
        db.expunge(member)
        _delete_journal(db, journal_id)

    db.commit()

    if deleted:
        logger.info("journal_deleted", journal_id=journal_id, reason="no_admins", by=by)
    else:
        db.refresh(member)
    logger.info("journal_member_role_changed", journal_id=journal_id, member_id=member_id, role=new_role.value, by=by)
    return member, deleted
