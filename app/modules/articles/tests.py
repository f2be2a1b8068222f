"""
Tests del módulo de Artículos: catálogo, ajuste manual de stock y stock bajo.
"""
from decimal import Decimal

from fastapi.testclient import TestClient

from app.main import app
from app.modules.articles.models import Article


client = TestClient(app)


def _article_payload(**overrides):
    payload = {
        "code": " des-010 ",
        "name": "Destornillador de estrella",
        "description": "Punta PH2",
        "unit_price": "15000",
        "stock": 40,
        "minimum_stock": 5,
    }
    payload.update(overrides)
    return payload


def test_create_article_normalizes_code(admin_headers, category):
    response = client.post("/articulos/", headers=admin_headers, json=_article_payload(category_id=category.id))

    assert response.status_code == 201
    body = response.json()
    assert body["code"] == "DES-010"
    assert body["category_name"] == "Herramientas"
    assert Decimal(body["unit_price"]) == Decimal("15000")
    assert body["is_low_stock"] is False


def test_create_article_duplicate_code(admin_headers, article):
    response = client.post("/articulos/", headers=admin_headers, json=_article_payload(code="tal-001"))

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "El código 'TAL-001' ya está asociado a otro artículo"


def test_create_article_unknown_category(admin_headers):
    response = client.post("/articulos/", headers=admin_headers, json=_article_payload(category_id=999))

    assert response.status_code == 400
    assert response.json()["detail"]["title"] == "Categoría no existe"


def test_create_article_rejects_non_positive_price(admin_headers):
    response = client.post("/articulos/", headers=admin_headers, json=_article_payload(unit_price="0"))
    assert response.status_code == 422


def test_create_article_requires_admin(seller_headers):
    response = client.post("/articulos/", headers=seller_headers, json=_article_payload())
    assert response.status_code == 403


def test_list_articles_with_search(seller_headers, article, second_article):
    response = client.get("/articulos/", headers=seller_headers)
    assert response.json()["total"] == 2

    response = client.get("/articulos/", headers=seller_headers, params={"search": "martillo"})
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["code"] == "MAR-002"


def test_list_articles_by_category(seller_headers, category, article, second_article):
    response = client.get("/articulos/", headers=seller_headers, params={"category_id": category.id})
    assert [item["code"] for item in response.json()["data"]] == ["TAL-001"]


def test_get_article_by_code(seller_headers, article):
    response = client.get("/articulos/codigo/tal-001", headers=seller_headers)
    assert response.status_code == 200
    assert response.json()["id"] == article.id

    assert client.get("/articulos/codigo/NO-EXISTE", headers=seller_headers).status_code == 404


def test_update_article_keeps_code_and_stock(admin_headers, article):
    response = client.put(f"/articulos/{article.id}", headers=admin_headers, json={
        "name": "Taladro percutor 750W",
        "unit_price": "120000",
        "code": "OTRO-CODIGO",
        "stock": 999
    })

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Taladro percutor 750W"
    assert Decimal(body["unit_price"]) == Decimal("120000")
    assert body["code"] == "TAL-001"
    assert body["stock"] == 10


def test_update_stock(db_session, admin_headers, article):
    response = client.patch(f"/articulos/{article.id}/stock", headers=admin_headers, json={"stock": 25})

    assert response.status_code == 200
    assert response.json() == {
        "id": article.id,
        "code": "TAL-001",
        "name": "Taladro percutor",
        "previous_stock": 10,
        "current_stock": 25,
    }

    db_session.expire_all()
    assert db_session.get(Article, article.id).stock == 25


def test_update_stock_rejects_negative(db_session, admin_headers, article):
    response = client.patch(f"/articulos/{article.id}/stock", headers=admin_headers, json={"stock": -1})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "El stock no puede ser un valor negativo"

    db_session.expire_all()
    assert db_session.get(Article, article.id).stock == 10


def test_update_stock_unknown_article(admin_headers):
    response = client.patch("/articulos/999/stock", headers=admin_headers, json={"stock": 5})
    assert response.status_code == 404


def test_low_stock_articles(db_session, seller_headers, article, second_article):
    second_article.stock = 3
    db_session.commit()

    response = client.get("/articulos/stock-bajo", headers=seller_headers)

    assert response.status_code == 200
    body = response.json()
    assert [item["code"] for item in body] == ["MAR-002"]
    assert body[0]["is_low_stock"] is True


def test_delete_article(db_session, admin_headers, seller_headers, article):
    response = client.delete(f"/articulos/{article.id}", headers=admin_headers)

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.get(Article, article.id).is_active is False
    assert client.get(f"/articulos/{article.id}", headers=seller_headers).status_code == 404


def test_delete_article_in_use_is_rejected(admin_headers, customer, article):
    created = client.post("/facturas/", headers=admin_headers, json={
        "customer_id": customer.id,
        "line_items": [{"article_id": article.id, "quantity": 2, "unit_price": "100000"}]
    })
    assert created.status_code == 201

    response = client.delete(f"/articulos/{article.id}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == (
        "El artículo no puede ser eliminado porque está siendo utilizado en facturas"
    )
