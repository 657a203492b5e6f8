"""Seed demo data for the cafe POS.

Creates the menu categories and items, a few customers, and one staff
account per role. Rows that already exist (matched by name or email) are
left alone, so the script can be run repeatedly.

Usage:
    python scripts/seed.py
"""

from decimal import Decimal

from cafe_pos.core.rbac import UserRole
from cafe_pos.core.security import get_password_hash
from cafe_pos.db.base import Base
from cafe_pos.db.session import SessionLocal, engine
from cafe_pos.models.customer import Customer
from cafe_pos.models.menu import Category, MenuItem
from cafe_pos.models.user import User

CATEGORIES = {
    "Beverages": "Hot and cold drinks",
    "Food": "Meals and snacks",
    "Desserts": "Sweet treats",
}

MENU_ITEMS = [
    # (category, name, price, description)
    ("Beverages", "Espresso", "2.50", "Strong Italian coffee"),
    ("Beverages", "Cappuccino", "3.50", "Espresso with steamed milk foam"),
    ("Beverages", "Latte", "4.00", "Espresso with steamed milk"),
    ("Beverages", "Americano", "3.00", "Espresso with hot water"),
    ("Beverages", "Iced Coffee", "3.50", "Cold brew coffee over ice"),
    ("Beverages", "Hot Tea", "2.00", "Selection of premium teas"),
    ("Food", "Croissant", "3.50", "Buttery French pastry"),
    ("Food", "Bagel with Cream Cheese", "4.50", "Fresh bagel with cream cheese"),
    ("Food", "Avocado Toast", "8.50", "Sourdough with fresh avocado"),
    ("Food", "Grilled Sandwich", "7.50", "Ham and cheese grilled sandwich"),
    ("Food", "Caesar Salad", "9.50", "Fresh romaine with caesar dressing"),
    ("Food", "Soup of the Day", "6.50", "Chef's daily soup selection"),
    ("Desserts", "Chocolate Cake", "5.50", "Rich chocolate layer cake"),
    ("Desserts", "Cheesecake", "6.00", "New York style cheesecake"),
    ("Desserts", "Muffin", "3.50", "Blueberry or chocolate chip"),
    ("Desserts", "Cookie", "2.50", "Chocolate chip or oatmeal raisin"),
]

CUSTOMERS = [
    ("John Doe", "+1234567890", "john@example.com"),
    ("Jane Smith", "+1234567891", "jane@example.com"),
    ("Bob Johnson", "+1234567892", "bob@example.com"),
    ("Alice Brown", "+1234567893", "alice@example.com"),
    ("Charlie Wilson", "+1234567894", "charlie@example.com"),
]

STAFF = [
    ("Reception User", "reception@cafe.com", UserRole.RECEPTION, "password123"),
    ("Cashier User", "cashier@cafe.com", UserRole.CASHIER, "password123"),
    ("Chef User", "chef@cafe.com", UserRole.CHEF, "password123"),
    ("Super Admin", "admin@cafe.com", UserRole.SUPER_ADMIN, "admin123"),
]


def seed():
    """Insert the demo data in one transaction."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        counts = _seed_all(db)
        db.commit()
        print(f"Seed data committed: {counts}")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()


def _seed_all(db) -> dict:
    counts = {"categories": 0, "menu_items": 0, "customers": 0, "users": 0}

    categories = {}
    for name, description in CATEGORIES.items():
        category = db.query(Category).filter(Category.name == name).first()
        if category is None:
            category = Category(name=name, description=description, is_active=True)
            db.add(category)
            counts["categories"] += 1
        categories[name] = category
    db.flush()

    for category_name, name, price, description in MENU_ITEMS:
        if db.query(MenuItem.id).filter(MenuItem.name == name).first():
            continue
        db.add(MenuItem(
            name=name,
            price=Decimal(price),
            description=description,
            category_id=categories[category_name].id,
            is_available=True,
        ))
        counts["menu_items"] += 1

    for name, phone, email in CUSTOMERS:
        if db.query(Customer.id).filter(Customer.email == email).first():
            continue
        db.add(Customer(name=name, phone=phone, email=email))
        counts["customers"] += 1

    for name, email, role, password in STAFF:
        if db.query(User.id).filter(User.email == email).first():
            continue
        db.add(User(
            name=name,
            email=email,
            role=role,
            password_hash=get_password_hash(password),
            is_active=True,
        ))
        counts["users"] += 1

    return counts


if __name__ == "__main__":
    print("=" * 60)
    print("Cafe POS - Seed Demo Data")
    print("=" * 60)
    seed()
