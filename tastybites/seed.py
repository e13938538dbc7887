"""
Demo Catalog

Five city branches, five menu categories and a starter menu. Inserted
at startup when SEED_CATALOG is on and the catalog is still empty.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tastybites.models import Branch, MenuCategory, MenuItem

logger = logging.getLogger(__name__)

BRANCHES = [
    ("Downtown Branch", "123 Main Street, City Center", "+1-555-0101"),
    ("Westside Branch", "456 West Avenue, West District", "+1-555-0102"),
    ("Eastside Branch", "789 East Boulevard, East District", "+1-555-0103"),
    ("North Branch", "321 North Road, North Quarter", "+1-555-0104"),
    ("South Branch", "654 South Street, South End", "+1-555-0105"),
]

CATEGORIES = [
    ("Appetizers", "Start your meal with our delicious starters"),
    ("Main Courses", "Hearty and satisfying main dishes"),
    ("Desserts", "Sweet treats to end your meal"),
    ("Beverages", "Refreshing drinks and specialty beverages"),
    ("Salads", "Fresh and healthy salad options"),
]

MENU = [
    ("Appetizers", "Spring Rolls", "8.99",
     "Crispy vegetable spring rolls with sweet chili sauce",
     "https://images.unsplash.com/photo-1569744723309-b5a0c6e5a5e5"),
    ("Appetizers", "Chicken Wings", "12.99",
     "Buffalo style wings with blue cheese dip",
     "https://images.unsplash.com/photo-1608039755401-742074f0548d"),
    ("Main Courses", "Grilled Salmon", "24.99",
     "Atlantic salmon with lemon butter sauce",
     "https://images.unsplash.com/photo-1467003909585-2f8a72700288"),
    ("Main Courses", "Beef Burger", "15.99",
     "Juicy beef patty with lettuce, tomato, and special sauce",
     "https://images.unsplash.com/photo-1568901346375-23c9450c58cd"),
    ("Salads", "Caesar Salad", "10.99",
     "Fresh romaine lettuce with Caesar dressing and croutons",
     "https://images.unsplash.com/photo-1546793665-c74683f339c1"),
    ("Desserts", "Chocolate Cake", "7.99",
     "Rich chocolate layer cake with ganache",
     "https://images.unsplash.com/photo-1578985545062-69928b1d9587"),
    ("Beverages", "Iced Coffee", "4.99",
     "Cold brew coffee with ice",
     "https://images.unsplash.com/photo-1517487881594-2787fef5ebf7"),
]


async def seed_catalog(db: AsyncSession) -> bool:
    """
    Insert the demo catalog unless branches already exist.

    Returns:
        True if rows were inserted
    """
    existing = await db.execute(select(func.count(Branch.id)))
    if existing.scalar():
        return False

    db.add_all(Branch(name=name, address=address, phone=phone) for name, address, phone in BRANCHES)

    categories = {name: MenuCategory(name=name, description=description) for name, description in CATEGORIES}
    db.add_all(categories.values())
    await db.flush()

    db.add_all(
        MenuItem(
            name=name,
            price=Decimal(price),
            description=description,
            photo_url=photo_url,
            category_id=categories[category].id,
            available=True,
        )
        for category, name, price, description, photo_url in MENU
    )
    await db.commit()

    logger.info(f"Seeded {len(BRANCHES)} branches, {len(CATEGORIES)} categories, {len(MENU)} menu items")
    return True
