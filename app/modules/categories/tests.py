"""
Tests del módulo de Categorías
"""
from fastapi.testclient import TestClient

from app.main import app
from app.modules.categories.models import Category


client = TestClient(app)


def test_create_category(admin_headers):
    response = client.post("/categorias/", headers=admin_headers, json={
        "name": "  Pinturas ",
        "description": "Vinilos y esmaltes"
    })

    assert response.status_code == 201
    assert response.json()["name"] == "Pinturas"
    assert response.json()["is_active"] is True


def test_create_category_duplicate_name_is_case_insensitive(admin_headers, category):
    response = client.post("/categorias/", headers=admin_headers, json={"name": "herramientas"})

    assert response.status_code == 400
    assert response.json()["detail"]["title"] == "Categoría duplicada"


def test_create_category_requires_admin(seller_headers):
    response = client.post("/categorias/", headers=seller_headers, json={"name": "Pinturas"})
    assert response.status_code == 403


def test_list_categories(seller_headers, category):
    response = client.get("/categorias/", headers=seller_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["categories"][0]["name"] == "Herramientas"


def test_get_category_not_found(seller_headers):
    response = client.get("/categorias/999", headers=seller_headers)

    assert response.status_code == 404
    assert response.json()["detail"]["message"] == "Categoría no encontrado(a)"


def test_category_articles(seller_headers, category, article, second_article):
    response = client.get(f"/categorias/{category.id}/articulos", headers=seller_headers)

    assert response.status_code == 200
    codes = [item["code"] for item in response.json()]
    assert codes == ["TAL-001"]


def test_update_category(admin_headers, category):
    response = client.put(f"/categorias/{category.id}", headers=admin_headers, json={
        "description": "Herramientas eléctricas y manuales"
    })

    assert response.status_code == 200
    assert response.json()["description"] == "Herramientas eléctricas y manuales"
    assert response.json()["name"] == "Herramientas"


def test_update_category_to_existing_name(db_session, admin_headers, category):
    other = Category(name="Pinturas")
    db_session.add(other)
    db_session.commit()

    response = client.put(f"/categorias/{other.id}", headers=admin_headers, json={"name": "Herramientas"})
    assert response.status_code == 400


def test_delete_category_with_active_articles_is_rejected(admin_headers, category, article):
    response = client.delete(f"/categorias/{category.id}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == (
        "La categoría no puede ser eliminada porque está siendo utilizada en artículos"
    )


def test_delete_category_is_soft(db_session, admin_headers, seller_headers, category):
    response = client.delete(f"/categorias/{category.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Categoría eliminada exitosamente"

    db_session.expire_all()
    stored = db_session.get(Category, category.id)
    assert stored is not None
    assert stored.is_active is False

    assert client.get(f"/categorias/{category.id}", headers=seller_headers).status_code == 404
