import secrets
import time
import uuid
from datetime import timedelta
from pathlib import Path

import structlog
from fastapi import Depends, FastAPI, Header, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from markupsafe import Markup
from sqlalchemy.orm import Session

from . import articles, images, journals, purchases, users
from .auth import current_user, optional_user
from .config import get_settings
from .database import Base, engine, get_db
from .errors import KioskError, UnauthorizedError
from .logger import get_logger, setup_logging
from .models import User
from .renderer import render
from .schemas import (
    ArticleCardOut,
    ArticleCreate,
    ArticleOut,
    ArticleViewOut,
    CleanupOut,
    ImageCreate,
    ImageDelete,
    ImageOut,
    JournalCreate,
    JournalOut,
    JournalPageOut,
    MemberAdd,
    MemberOut,
    MemberRemove,
    MemberRoleOut,
    MemberRoleUpdate,
    MembershipOut,
    PurchaseOut,
    UserOut,
)
from .storage import Storage, get_storage

setup_logging()
logger = get_logger("main")

Base.metadata.create_all(bind=engine)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

app = FastAPI(title="Kiosk API")
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["x-request-id"] = request_id
        return response
    finally:
        if request.url.path != "/health":
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        structlog.contextvars.clear_contextvars()


@app.exception_handler(KioskError)
async def kiosk_error_handler(request: Request, exc: KioskError):
    logger.warning("request_rejected", path=request.url.path, code=exc.code, detail=exc.message)
    return error_response(exc.status_code, exc.code, exc.message)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = jsonable_errors(exc)
    logger.warning("validation_error", path=request.url.path, errors=details)
    return error_response(422, "validation_error", "Validation failed", details=details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


@app.get("/health")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# Articles


@app.post("/api/articles", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
def create_article(payload: ArticleCreate, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return articles.publish(
        db,
        title=payload.title,
        content=payload.content,
        author_id=user.id,
        thumbnail_url=payload.thumbnail_url,
        price=payload.price,
        journal_id=payload.journal_id,
    )


@app.get("/api/articles", response_model=list[ArticleCardOut])
def list_own_articles(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return [articles.card(article) for article in articles.list_by_author(db, user.id)]


@app.get("/api/articles/latest", response_model=list[ArticleCardOut])
def list_latest_articles(limit: int = Query(default=20, ge=1, le=100), db: Session = Depends(get_db)):
    return [articles.card(article) for article in articles.list_latest(db, limit=limit)]


@app.get("/api/articles/{article_id}", response_model=ArticleViewOut)
def get_article(article_id: int, viewer: User | None = Depends(optional_user), db: Session = Depends(get_db)):
    view = articles.get_article_view(db, article_id, viewer.id if viewer else None)
    if not view["can_read"]:
        view["content"] = None
    return view


@app.post(
    "/api/articles/{article_id}/purchases",
    response_model=PurchaseOut,
    status_code=status.HTTP_201_CREATED,
)
def purchase_article(article_id: int, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return purchases.purchase_article(db, user.id, article_id)


@app.get("/api/users/{user_id}/articles", response_model=list[ArticleCardOut])
def list_user_articles(user_id: int, db: Session = Depends(get_db)):
    return [articles.card(article) for article in articles.list_by_author(db, user_id)]


@app.get("/article/{article_id}", response_class=HTMLResponse)
def article_page(
    request: Request,
    article_id: int,
    viewer: User | None = Depends(optional_user),
    db: Session = Depends(get_db),
):
    view = articles.get_article_view(db, article_id, viewer.id if viewer else None)
    # Paid bodies are rendered only for readers who may see them.
    body = Markup(render(view["content"])) if view["can_read"] else None
    return templates.TemplateResponse(request, "article.html", {"article": view, "body": body})


# Images


@app.post("/api/images", response_model=ImageOut, status_code=status.HTTP_201_CREATED)
def create_image(payload: ImageCreate, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return images.record_upload(db, payload.url, payload.key, user.id)


@app.get("/api/images", response_model=list[ImageOut])
def list_images(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return images.list_owned(db, user.id)


@app.delete("/api/images")
def delete_image(
    payload: ImageDelete,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
):
    images.delete_owned(db, storage, payload.key, user.id)
    return {"success": True}


# Journals


@app.post("/api/journals", response_model=JournalOut, status_code=status.HTTP_201_CREATED)
def create_journal(payload: JournalCreate, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return journals.create_journal(db, payload.name, payload.description, user.id)


@app.get("/api/journals", response_model=list[MembershipOut])
def list_journal_memberships(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return journals.list_memberships(db, user.id)


@app.get("/api/journals/members", response_model=list[MemberOut])
def list_journal_members(
    journal_id: int = Query(...), user: User = Depends(current_user), db: Session = Depends(get_db)
):
    return journals.list_members(db, journal_id, user.id)


@app.post("/api/journals/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_journal_member(payload: MemberAdd, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return journals.add_member(db, payload.journal_id, payload.user_email, user.id)


@app.delete("/api/journals/members")
def remove_journal_member(payload: MemberRemove, user: User = Depends(current_user), db: Session = Depends(get_db)):
    journals.remove_member(db, payload.journal_id, payload.member_id, user.id)
    return {"success": True}


@app.patch("/api/journals/members", response_model=MemberRoleOut)
def change_journal_member_role(
    payload: MemberRoleUpdate, user: User = Depends(current_user), db: Session = Depends(get_db)
):
    member, deleted = journals.change_role(db, payload.journal_id, payload.member_id, payload.role, user.id)
    return MemberRoleOut(member=MemberOut.model_validate(member), deleted=deleted)


@app.get("/api/journals/{slug}", response_model=JournalPageOut)
def get_journal_page(slug: str, db: Session = Depends(get_db)):
    journal = journals.get_journal_by_slug(db, slug)
    cards = [articles.card(article) for article in articles.list_by_journal(db, journal.id)]
    return JournalPageOut(journal=JournalOut.model_validate(journal), articles=cards)


# Users


@app.get("/api/users/search", response_model=list[UserOut])
def search_users(name: str | None = Query(default=None), db: Session = Depends(get_db)):
    return users.search_by_name(db, name)


# Scheduled cleanup


def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if not settings.cron_secret:
        if settings.is_development:
            return
        raise UnauthorizedError("Unauthorized")
    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not secrets.compare_digest(authorization.encode(), expected.encode()):
        raise UnauthorizedError("Unauthorized")


@app.get("/api/cron/cleanup-images", response_model=CleanupOut, dependencies=[Depends(verify_cron_secret)])
def cleanup_images(db: Session = Depends(get_db), storage: Storage = Depends(get_storage)):
    settings = get_settings()
    report = images.sweep_orphans(
        db,
        storage,
        retention=timedelta(hours=settings.orphan_retention_hours),
        batch_size=settings.sweep_batch_size,
    )
    if report.attempted == 0:
        message = "No orphan images to clean up"
    elif report.failed_batches:
        message = "Partial cleanup - some storage deletions failed"
    else:
        message = "Cleanup complete"
    return CleanupOut(
        message=message,
        attempted=report.attempted,
        deleted=report.deleted,
        failed_batches=report.failed_batches,
        keys=report.deleted_keys,
    )
