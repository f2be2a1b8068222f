"""
Seed script: crea el usuario administrador inicial y, opcionalmente, datos de demostración.

Qué crea:
- Usuario Admin (activo) con las credenciales indicadas. Es necesario porque
  /auth/registro solo lo puede usar un Admin.
- Un Supervisor y un Vendedor de demostración.
- Categorías y artículos de ferretería con stock inicial.
- Clientes con cédula.
- Facturas creadas con InvoiceService (descuentan stock); una parte se anula.

Uso:
    python scripts/seed_demo_data.py --username admin --password Admin!2025
    python scripts/seed_demo_data.py --admin-only

Pensado solo para entornos de desarrollo.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import datetime, timedelta
from decimal import Decimal

from app.database.database import SessionLocal
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import hash_password
from app.modules.articles.models import Article
from app.modules.categories.models import Category
from app.modules.customers.models import Customer
from app.modules.invoices.schemas import InvoiceCreate, InvoiceLineItemCreate
from app.modules.invoices.service import InvoiceService

CATEGORY_NAMES = ["Herramientas", "Pinturas", "Eléctricos", "Plomería", "Tornillería"]
ARTICLE_NAMES = {
    "Herramientas": ["Martillo", "Destornillador", "Llave inglesa", "Alicate", "Serrucho"],
    "Pinturas": ["Vinilo blanco", "Esmalte negro", "Rodillo", "Brocha", "Thinner"],
    "Eléctricos": ["Cable 12 AWG", "Interruptor", "Toma doble", "Bombillo LED", "Cinta aislante"],
    "Plomería": ["Tubo PVC", "Codo PVC", "Llave de paso", "Teflón", "Sifón"],
    "Tornillería": ["Tornillo drywall", "Chazo plástico", "Puntilla", "Tuerca", "Arandela"],
}


def pick(seq):
    return random.choice(seq)


def create_user(db, username: str, password: str, role: UserRole, first_name: str, last_name: str = "Demo"):
    user = db.query(User).filter(User.username == username.lower()).first()
    if user:
        return user
    user = User(
        username=username.lower(),
        password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_categories(db):
    categories = []
    for name in CATEGORY_NAMES:
        category = db.query(Category).filter(Category.name == name).first()
        if not category:
            category = Category(name=name, description=f"Artículos de {name.lower()}")
            db.add(category)
        categories.append(category)
    db.commit()
    return categories


def generate_code(category_name: str, idx: int) -> str:
    prefix = ''.join([ch for ch in category_name.upper() if ch.isalpha()])[:3]
    return f"{prefix}-{idx:04d}"


def create_articles(db, categories, article_count=40):
    articles = []
    for i in range(article_count):
        category = categories[i % len(categories)]
        code = generate_code(category.name, i)
        # Idempotente al re-ejecutar
        existing = db.query(Article).filter(Article.code == code).first()
        if existing:
            articles.append(existing)
            continue

        article = Article(
            code=code,
            name=f"{pick(ARTICLE_NAMES[category.name])} {random.randint(1, 99)}",
            description=f"{category.name} - artículo de demostración",
            unit_price=Decimal(random.randint(20, 4000)) * Decimal(100),
            stock=random.randint(0, 80),
            minimum_stock=random.randint(2, 10),
            category_id=category.id,
        )
        db.add(article)
        articles.append(article)
    db.commit()
    return articles


def create_customers(db, customer_count=25):
    first_names = ["Juan", "María", "Carlos", "Ana", "Luis", "Laura", "Diego", "Paula", "Andrés", "Sofía"]
    last_names = ["Pérez", "García", "López", "Gómez", "Rodríguez", "Martínez", "Hernández", "Torres", "Ramírez", "Sánchez"]

    customers = []
    for i in range(customer_count):
        document = str(10000000 + i)
        customer = db.query(Customer).filter(Customer.document_number == document).first()
        if not customer:
            customer = Customer(
                document_number=document,
                first_names=pick(first_names),
                last_names=f"{pick(last_names)} {pick(last_names)}",
                address=f"Calle {random.randint(1, 150)} # {random.randint(1, 99)}-{random.randint(1, 99)}",
                phone=f"300{random.randint(1000000, 9999999)}",
                email=f"cliente{i}@correo.com",
            )
            db.add(customer)
        customers.append(customer)
    db.commit()
    return customers


def create_invoices(db, customers, articles, invoice_count, user_id, void_ratio=0.1):
    """
    Crea facturas con InvoiceService. Las rechazadas (por ejemplo, sin stock)
    se omiten.

    Returns:
        (facturas creadas, facturas anuladas)
    """
    service = InvoiceService(db)
    created = 0
    voided = 0
    for _ in range(invoice_count):
        available = [article for article in articles if article.stock > 0]
        if not available:
            break

        chosen = random.sample(available, k=min(len(available), random.randint(1, 4)))
        items = [
            InvoiceLineItemCreate(
                article_id=article.id,
                quantity=random.randint(1, min(3, article.stock)),
                unit_price=article.unit_price
            )
            for article in chosen
        ]
        result = service.create_invoice(
            InvoiceCreate(customer_id=pick(customers).id, line_items=items),
            user_id=user_id
        )
        if not result.ok:
            print(f"  Factura omitida: {result.message}")
            continue

        invoice = result.data
        invoice.date = datetime.now() - timedelta(days=random.randint(0, 30))
        db.commit()
        created += 1

        if random.random() < void_ratio:
            if service.void_invoice(invoice.id, "Anulación de demostración", user_id).ok:
                voided += 1

        if created % 20 == 0:
            print(f"  Facturas creadas: {created}")
    return created, voided


def main(argv=None):
    parser = argparse.ArgumentParser(description="Crear usuario administrador y datos de demostración")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--password", default="Admin!2025")
    parser.add_argument("--admin-only", action="store_true", help="Solo crear el usuario administrador")
    parser.add_argument("--articles", type=int, default=40)
    parser.add_argument("--customers", type=int, default=25)
    parser.add_argument("--invoices", type=int, default=60)
    parser.add_argument("--seed", type=int, default=None, help="Semilla para resultados reproducibles")
    args = parser.parse_args(argv)

    if args.seed is not None:
        random.seed(args.seed)

    db = SessionLocal()
    try:
        admin = create_user(db, args.username, args.password, UserRole.ADMIN, "Administrador")
        print(f"Usuario administrador: {admin.username}")

        if args.admin_only:
            return

        create_user(db, "supervisor", args.password, UserRole.SUPERVISOR, "Supervisor")
        create_user(db, "vendedor", args.password, UserRole.VENDEDOR, "Vendedor")

        print("Creando categorías y artículos...")
        categories = create_categories(db)
        articles = create_articles(db, categories, article_count=args.articles)
        print(f"Artículos: {len(articles)}")

        print("Creando clientes...")
        customers = create_customers(db, customer_count=args.customers)
        print(f"Clientes: {len(customers)}")

        print("Creando facturas (descuentan stock)...")
        created, voided = create_invoices(db, customers, articles, args.invoices, admin.id)
        print(f"Facturas creadas: {created}, anuladas: {voided}")

        print("\nSeed completado.")
        print("Credenciales (todos los usuarios comparten la contraseña):")
        print(f"  Admin:      {admin.username}")
        print("  Supervisor: supervisor")
        print("  Vendedor:   vendedor")
        print(f"  Password:   {args.password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
