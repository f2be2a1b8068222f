"""
Fixtures compartidas para los tests de todos los módulos.

La base de datos es SQLite en memoria con una sola conexión compartida, así
que la sesión de los tests y la de cada request ven los mismos datos. Los
datos de los fixtures se hacen commit antes de llamar a la API.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

from decimal import Decimal

import pytest

from app.main import app  # noqa: F401  registra todos los modelos
from app.database.database import Base, SessionLocal, engine
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import hash_password, create_access_token
from app.modules.articles.models import Article
from app.modules.categories.models import Category
from app.modules.customers.models import Customer

TEST_PASSWORD = "clave-segura-123"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _create_user(db, username: str, role: UserRole) -> User:
    user = User(
        username=username,
        password=_PASSWORD_HASH,
        first_name=username.capitalize(),
        last_name="Pruebas",
        email=f"{username}@facturacion.test",
        role=role.value,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "username": user.username, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture
def seller_user(db_session):
    return _create_user(db_session, "vendedor", UserRole.VENDEDOR)


@pytest.fixture
def supervisor_user(db_session):
    return _create_user(db_session, "supervisor", UserRole.SUPERVISOR)


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def seller_headers(seller_user):
    return _headers_for(seller_user)


@pytest.fixture
def supervisor_headers(supervisor_user):
    return _headers_for(supervisor_user)


@pytest.fixture
def category(db_session):
    category = Category(name="Herramientas", description="Herramientas manuales")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def customer(db_session):
    customer = Customer(
        document_number="1020304050",
        first_names="Ana María",
        last_names="Gómez Ruiz",
        address="Calle 10 # 20-30, Medellín",
        phone="3001234567",
        email="ana.gomez@correo.test"
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def article(db_session, category):
    """Artículo con stock 10 y precio 100.000"""
    article = Article(
        code="TAL-001",
        name="Taladro percutor",
        description="Taladro 650W",
        unit_price=Decimal("100000.00"),
        stock=10,
        minimum_stock=2,
        category_id=category.id
    )
    db_session.add(article)
    db_session.commit()
    db_session.refresh(article)
    return article


@pytest.fixture
def second_article(db_session):
    """Artículo sin categoría con stock 20 y precio 50.000"""
    article = Article(
        code="MAR-002",
        name="Martillo de uña",
        unit_price=Decimal("50000.00"),
        stock=20,
        minimum_stock=5
    )
    db_session.add(article)
    db_session.commit()
    db_session.refresh(article)
    return article
