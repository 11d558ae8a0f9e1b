import pytest
from conftest import as_user, make_user

from kiosk import articles, purchases
from kiosk.errors import ConflictError, NotFoundError, ValidationError
from kiosk.models import ArticlePurchase

CONTENT = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "paid words"}]}]}


def test_second_purchase_conflicts_and_first_amount_survives(db):
    author = make_user(db, "a@example.com")
    reader = make_user(db, "r@example.com")
    article = articles.publish(db, "Paid", CONTENT, author_id=author.id, price=3)

    first = purchases.record_purchase(db, reader.id, article.id, 3)

    article.price = 5
    db.commit()

    with pytest.raises(ConflictError):
        purchases.record_purchase(db, reader.id, article.id, 5)

    rows = db.query(ArticlePurchase).all()
    assert [(row.id, row.amount_paid) for row in rows] == [(first.id, 3)]
    assert purchases.has_purchased(db, reader.id, article.id) is True
    assert purchases.has_purchased(db, author.id, article.id) is False
    assert purchases.has_purchased(db, None, article.id) is False


def test_record_purchase_requires_existing_article(db):
    reader = make_user(db, "r@example.com")

    with pytest.raises(NotFoundError):
        purchases.record_purchase(db, reader.id, 404, 1)


def test_purchase_article_rules(db):
    author = make_user(db, "a@example.com")
    reader = make_user(db, "r@example.com")
    free = articles.publish(db, "Free", CONTENT, author_id=author.id)
    paid = articles.publish(db, "Paid", CONTENT, author_id=author.id, price=2)

    with pytest.raises(ValidationError):
        purchases.purchase_article(db, reader.id, free.id)
    with pytest.raises(ValidationError):
        purchases.purchase_article(db, author.id, paid.id)

    purchase = purchases.purchase_article(db, reader.id, paid.id)
    assert purchase.amount_paid == 2


def test_purchase_route_rejects_duplicates(client, db):
    author = make_user(db, "a@example.com")
    reader = make_user(db, "r@example.com")
    paid = articles.publish(db, "Paid", CONTENT, author_id=author.id, price=1)

    assert client.post(f"/api/articles/{paid.id}/purchases", headers=as_user(reader.id)).status_code == 201

    again = client.post(f"/api/articles/{paid.id}/purchases", headers=as_user(reader.id))
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "conflict"
