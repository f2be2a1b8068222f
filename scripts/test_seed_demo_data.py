import random

from app.modules.articles.models import Article
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import verify_password
from app.modules.invoices.models import Invoice, InvoiceState
from scripts.seed_demo_data import (
    create_articles, create_categories, create_customers, create_invoices, create_user, generate_code, main
)


def test_generate_code():
    assert generate_code("Eléctricos", 7) == "ELÉ-0007"
    assert generate_code("Plomería", 12) == "PLO-0012"


def test_create_user_is_idempotent(db_session):
    first = create_user(db_session, "Jefe", "clave-demo-123", UserRole.ADMIN, "Jefe")
    second = create_user(db_session, "jefe", "otra-clave-123", UserRole.ADMIN, "Jefe")

    assert first.id == second.id
    assert first.username == "jefe"
    assert verify_password("clave-demo-123", first.password)
    assert db_session.query(User).count() == 1


def test_demo_invoices_respect_stock(db_session):
    random.seed(7)
    admin = create_user(db_session, "admin", "clave-demo-123", UserRole.ADMIN, "Administrador")
    categories = create_categories(db_session)
    articles = create_articles(db_session, categories, article_count=10)
    customers = create_customers(db_session, customer_count=5)

    created, voided = create_invoices(db_session, customers, articles, 15, admin.id, void_ratio=0.3)

    assert db_session.query(Invoice).count() == created
    assert db_session.query(Invoice).filter(Invoice.state == InvoiceState.VOIDED.value).count() == voided
    assert all(article.stock >= 0 for article in db_session.query(Article).all())


def test_main_admin_only(db_session):
    main(["--username", "Root", "--password", "clave-demo-123", "--admin-only"])

    users = db_session.query(User).all()
    assert [user.username for user in users] == ["root"]
    assert users[0].role == UserRole.ADMIN.value


def test_main_full_seed_is_repeatable(db_session):
    args = ["--articles", "8", "--customers", "4", "--invoices", "5", "--seed", "3"]
    main(args)
    main(args)

    assert db_session.query(User).count() == 3
    assert db_session.query(Article).count() == 8
