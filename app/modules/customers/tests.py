"""
Tests para el módulo de Clientes

- CRUD con validación de documentos colombianos (cédula / NIT con DV)
- Búsqueda y paginación
- Eliminación lógica bloqueada cuando el cliente tiene facturas
"""
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.modules.customers.models import Customer
from app.modules.customers.schemas import CustomerCreate


client = TestClient(app)


@pytest.fixture
def sample_customer_data():
    """Datos de ejemplo para crear clientes"""
    return {
        "document_number": "900.123.456-8",
        "first_names": "Ferretería",
        "last_names": "El Tornillo SAS",
        "address": "Carrera 7 # 32-16, Bogotá",
        "phone": "601 234 5678",
        "email": "compras@eltornillo.com.co"
    }


class TestCustomerSchemas:
    def test_document_is_cleaned(self, sample_customer_data):
        data = CustomerCreate(**sample_customer_data)
        assert data.document_number == "9001234568"
        assert data.phone == "6012345678"

    def test_invalid_nit_check_digit(self, sample_customer_data):
        sample_customer_data["document_number"] = "900123456-1"
        with pytest.raises(ValueError):
            CustomerCreate(**sample_customer_data)

    def test_invalid_phone(self, sample_customer_data):
        sample_customer_data["phone"] = "12345"
        with pytest.raises(ValueError):
            CustomerCreate(**sample_customer_data)

    def test_blank_phone_becomes_none(self, sample_customer_data):
        sample_customer_data["phone"] = "  "
        assert CustomerCreate(**sample_customer_data).phone is None


class TestCustomerEndpoints:
    def test_create_customer(self, admin_headers, sample_customer_data):
        response = client.post("/clientes/", headers=admin_headers, json=sample_customer_data)

        assert response.status_code == 201
        body = response.json()
        assert body["document_number"] == "9001234568"
        assert body["full_name"] == "Ferretería El Tornillo SAS"

    def test_create_customer_duplicate_document(self, admin_headers, customer, sample_customer_data):
        sample_customer_data["document_number"] = customer.document_number

        response = client.post("/clientes/", headers=admin_headers, json=sample_customer_data)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == (
            "Ya existe un cliente con el número de documento '1020304050'"
        )

    def test_create_customer_invalid_document(self, admin_headers, sample_customer_data):
        sample_customer_data["document_number"] = "0012345"
        response = client.post("/clientes/", headers=admin_headers, json=sample_customer_data)
        assert response.status_code == 422

    def test_create_customer_requires_admin(self, seller_headers, sample_customer_data):
        response = client.post("/clientes/", headers=seller_headers, json=sample_customer_data)
        assert response.status_code == 403

    def test_list_and_search(self, admin_headers, seller_headers, customer, sample_customer_data):
        client.post("/clientes/", headers=admin_headers, json=sample_customer_data)

        response = client.get("/clientes/", headers=seller_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 2

        response = client.get("/clientes/", headers=seller_headers, params={"search": "gómez"})
        body = response.json()
        assert body["total"] == 1
        assert body["data"][0]["document_number"] == "1020304050"

    def test_pagination(self, db_session, seller_headers):
        for i in range(3):
            db_session.add(Customer(
                document_number=f"10203040{i}",
                first_names="Cliente",
                last_names=f"Número {i}"
            ))
        db_session.commit()

        response = client.get("/clientes/", headers=seller_headers, params={"page": 1, "limit": 2})
        body = response.json()
        assert len(body["data"]) == 2
        assert body["hasNext"] is True
        assert body["hasPrev"] is False

        response = client.get("/clientes/", headers=seller_headers, params={"page": 2, "limit": 2})
        body = response.json()
        assert len(body["data"]) == 1
        assert body["hasNext"] is False
        assert body["hasPrev"] is True

    def test_get_by_document(self, seller_headers, customer):
        response = client.get("/clientes/documento/1020304050", headers=seller_headers)
        assert response.status_code == 200
        assert response.json()["id"] == customer.id

        response = client.get("/clientes/documento/99999999", headers=seller_headers)
        assert response.status_code == 404

    def test_update_customer(self, admin_headers, customer):
        response = client.put(f"/clientes/{customer.id}", headers=admin_headers, json={
            "address": "Avenida 80 # 45-10, Medellín",
            "phone": "3109876543"
        })

        assert response.status_code == 200
        assert response.json()["address"] == "Avenida 80 # 45-10, Medellín"
        assert response.json()["first_names"] == "Ana María"

    def test_update_customer_to_taken_document(self, db_session, admin_headers, customer):
        other = Customer(document_number="80123456", first_names="Luis", last_names="Pérez")
        db_session.add(other)
        db_session.commit()

        response = client.put(f"/clientes/{other.id}", headers=admin_headers, json={
            "document_number": "1020304050"
        })
        assert response.status_code == 400
        assert response.json()["detail"]["title"] == "Actualización fallida"

    def test_delete_customer(self, db_session, admin_headers, customer):
        response = client.delete(f"/clientes/{customer.id}", headers=admin_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Customer, customer.id).is_active is False

    def test_delete_customer_with_invoices_is_rejected(self, admin_headers, customer, article):
        created = client.post("/facturas/", headers=admin_headers, json={
            "customer_id": customer.id,
            "line_items": [{"article_id": article.id, "quantity": 1, "unit_price": "100000"}]
        })
        assert created.status_code == 201

        response = client.delete(f"/clientes/{customer.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == (
            "No se puede eliminar el cliente 'Ana María Gómez Ruiz' porque tiene facturas asociadas"
        )

    def test_get_deleted_customer_not_found(self, db_session, seller_headers, customer):
        customer.is_active = False
        db_session.commit()

        response = client.get(f"/clientes/{customer.id}", headers=seller_headers)
        assert response.status_code == 404
