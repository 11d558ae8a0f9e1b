import pytest
from conftest import as_user, make_user

from kiosk import articles, journals
from kiosk.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from kiosk.models import Article, Journal, JournalMember, JournalRole

CONTENT = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "body"}]}]}


@pytest.mark.parametrize(
    "name,slug",
    [
        ("My Cool Journal!", "my-cool-journal"),
        ("  Backend   Journal  ", "backend-journal"),
        ("Rock -- Roll", "rock-roll"),
        ("snake_case ok", "snake_case-ok"),
    ],
)
def test_slugify(name, slug):
    assert journals.slugify(name) == slug


def test_create_journal_makes_creator_admin(db):
    creator = make_user(db, "a@example.com")

    journal = journals.create_journal(db, "  My Cool Journal! ", " notes ", creator.id)

    assert journal.name == "My Cool Journal!"
    assert journal.slug == "my-cool-journal"
    assert journal.description == "notes"
    members = db.query(JournalMember).filter_by(journal_id=journal.id).all()
    assert [(member.user_id, member.role) for member in members] == [(creator.id, JournalRole.ADMIN)]


def test_create_journal_resolves_slug_collisions(db):
    creator = make_user(db, "a@example.com")

    first = journals.create_journal(db, "My Cool Journal!", None, creator.id)
    second = journals.create_journal(db, "My Cool Journal!", None, creator.id)
    third = journals.create_journal(db, "My Cool Journal!", None, creator.id)

    assert first.slug == "my-cool-journal"
    assert second.slug.startswith("my-cool-journal-")
    assert len({first.slug, second.slug, third.slug}) == 3


@pytest.mark.parametrize("name", [None, "", "   "])
def test_create_journal_requires_name(db, name):
    creator = make_user(db, "a@example.com")

    with pytest.raises(ValidationError):
        journals.create_journal(db, name, None, creator.id)

    assert db.query(Journal).count() == 0


def test_add_member_rules(db):
    admin = make_user(db, "admin@example.com")
    writer = make_user(db, "writer@example.com")
    journal = journals.create_journal(db, "J", None, admin.id)

    member = journals.add_member(db, journal.id, writer.email, admin.id)
    assert member.role == JournalRole.WRITER

    with pytest.raises(ConflictError):
        journals.add_member(db, journal.id, writer.email, admin.id)
    with pytest.raises(NotFoundError):
        journals.add_member(db, journal.id, "ghost@example.com", admin.id)
    with pytest.raises(ForbiddenError):
        journals.add_member(db, journal.id, admin.email, writer.id)


def test_remove_member_rules(db):
    admin = make_user(db, "admin@example.com")
    writer = make_user(db, "writer@example.com")
    journal = journals.create_journal(db, "J", None, admin.id)
    member = journals.add_member(db, journal.id, writer.email, admin.id)
    admin_membership = journals.get_membership(db, admin.id, journal.id)

    with pytest.raises(ForbiddenError):
        journals.remove_member(db, journal.id, admin_membership.id, writer.id)
    with pytest.raises(ValidationError):
        journals.remove_member(db, journal.id, admin_membership.id, admin.id)
    with pytest.raises(NotFoundError):
        journals.remove_member(db, journal.id, 999, admin.id)

    journals.remove_member(db, journal.id, member.id, admin.id)
    assert journals.get_membership(db, writer.id, journal.id) is None


def test_change_role_promotes_without_deleting(db):
    admin = make_user(db, "admin@example.com")
    writer = make_user(db, "writer@example.com")
    journal = journals.create_journal(db, "J", None, admin.id)
    member = journals.add_member(db, journal.id, writer.email, admin.id)

    updated, deleted = journals.change_role(db, journal.id, member.id, "ADMIN", admin.id)

    assert deleted is False
    assert updated.role == JournalRole.ADMIN
    assert db.get(Journal, journal.id) is not None


def test_change_role_rejects_unknown_role_and_non_admins(db):
    admin = make_user(db, "admin@example.com")
    writer = make_user(db, "writer@example.com")
    journal = journals.create_journal(db, "J", None, admin.id)
    member = journals.add_member(db, journal.id, writer.email, admin.id)

    with pytest.raises(ValidationError):
        journals.change_role(db, journal.id, member.id, "OWNER", admin.id)
    with pytest.raises(ForbiddenError):
        journals.change_role(db, journal.id, member.id, "ADMIN", writer.id)


def test_demoting_last_admin_deletes_journal_and_keeps_articles(db):
    admin = make_user(db, "admin@example.com")
    writer = make_user(db, "writer@example.com")
    journal = journals.create_journal(db, "J", None, admin.id)
    journals.add_member(db, journal.id, writer.email, admin.id)
    article = articles.publish(db, "In journal", CONTENT, author_id=writer.id, journal_id=journal.id)
    admin_membership = journals.get_membership(db, admin.id, journal.id)
    journal_id = journal.id

    member, deleted = journals.change_role(db, journal_id, admin_membership.id, JournalRole.WRITER, admin.id)

    assert deleted is True
    assert member.role == JournalRole.WRITER
    db.expire_all()
    assert db.get(Journal, journal_id) is None
    assert db.query(JournalMember).filter_by(journal_id=journal_id).count() == 0
    survivor = db.get(Article, article.id)
    assert survivor is not None
    assert survivor.journal_id is None


def test_journal_routes(client, db):
    admin = make_user(db, "admin@example.com", name="Admin")
    writer = make_user(db, "writer@example.com", name="Writer")

    created = client.post("/api/journals", json={"name": "My Cool Journal!", "description": "notes"}, headers=as_user(admin.id))
    assert created.status_code == 201
    journal = created.json()
    assert journal["slug"] == "my-cool-journal"

    memberships = client.get("/api/journals", headers=as_user(admin.id)).json()
    assert [(m["role"], m["journal"]["id"]) for m in memberships] == [("ADMIN", journal["id"])]

    added = client.post(
        "/api/journals/members",
        json={"journal_id": journal["id"], "user_email": writer.email},
        headers=as_user(admin.id),
    )
    assert added.status_code == 201
    writer_member = added.json()
    assert writer_member["role"] == "WRITER"
    assert writer_member["user"]["email"] == writer.email

    duplicate = client.post(
        "/api/journals/members",
        json={"journal_id": journal["id"], "user_email": writer.email},
        headers=as_user(admin.id),
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "conflict"

    members = client.get(f"/api/journals/members?journal_id={journal['id']}", headers=as_user(admin.id)).json()
    assert [m["user"]["id"] for m in members] == [admin.id, writer.id]

    hidden = client.get(f"/api/journals/members?journal_id={journal['id']}", headers=as_user(writer.id))
    assert hidden.status_code == 403

    published = client.post(
        "/api/articles",
        json={"title": "Dispatch", "content": CONTENT, "journal_id": journal["id"]},
        headers=as_user(writer.id),
    )
    assert published.status_code == 201

    page = client.get("/api/journals/my-cool-journal").json()
    assert page["journal"]["name"] == "My Cool Journal!"
    assert [card["title"] for card in page["articles"]] == ["Dispatch"]

    removed = client.request(
        "DELETE",
        "/api/journals/members",
        json={"journal_id": journal["id"], "member_id": writer_member["id"]},
        headers=as_user(admin.id),
    )
    assert removed.status_code == 200
    assert removed.json() == {"success": True}


def test_role_change_route_reports_deletion(client, db):
    admin = make_user(db, "admin@example.com")
    journal = journals.create_journal(db, "Solo", None, admin.id)
    admin_membership = journals.get_membership(db, admin.id, journal.id)

    response = client.patch(
        "/api/journals/members",
        json={"journal_id": journal.id, "member_id": admin_membership.id, "role": "WRITER"},
        headers=as_user(admin.id),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["deleted"] is True
    assert data["member"]["role"] == "WRITER"
    assert client.get("/api/journals/solo").status_code == 404


def test_user_search(client, db):
    make_user(db, "ada@example.com", name="Ada Lovelace")
    make_user(db, "adam@example.com", name="adam smith")
    make_user(db, "grace@example.com", name="Grace Hopper")

    found = client.get("/api/users/search?name=AD").json()
    assert sorted(user["email"] for user in found) == ["ada@example.com", "adam@example.com"]

    assert client.get("/api/users/search").status_code == 400


def test_route_segment_slugs_are_reserved(client, db):
    creator = make_user(db, "a@example.com")

    members = journals.create_journal(db, "Members", None, creator.id)
    blank = journals.create_journal(db, "!!!", None, creator.id)

    assert members.slug.startswith("members-")
    assert blank.slug == "journal"
    page = client.get(f"/api/journals/{members.slug}")
    assert page.status_code == 200
    assert page.json()["journal"]["name"] == "Members"
