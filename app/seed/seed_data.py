from sqlalchemy.orm import Session

from app.models.user import User
from app.models.category import Category
from app.models.business import Business
from app.models.review import Review

# (name, icon, slug) for the categories offered on the home page
DEFAULT_CATEGORIES = [
    ("Hair Salons", "scissors", "hair-salons"),
    ("Repair Services", "wrench", "repair-services"),
    ("Tailors", "shirt", "tailors"),
    ("Street Food", "utensils", "street-food"),
    ("Hardware", "hammer", "hardware"),
    ("Groceries", "shopping-basket", "groceries"),
]


def seed_db(db: Session) -> None:
    """Seed the database with sample data."""

    # Clear existing data (optional - comment out if you want to preserve data)
    db.query(Review).delete()
    db.query(Business).delete()
    db.query(Category).delete()
    db.query(User).delete()
    db.commit()

    categories = {
        slug: Category(name=name, icon=icon, slug=slug)
        for name, icon, slug in DEFAULT_CATEGORIES
    }
    db.add_all(categories.values())

    # Users (ids are identity provider subjects)
    alice = User(
        id="11111111-1111-1111-1111-111111111111",
        email="alice@example.com",
        first_name="Alice",
        last_name="Mensah",
    )
    bob = User(
        id="22222222-2222-2222-2222-222222222222",
        email="bob@example.com",
        first_name="Bob",
        last_name="Okafor",
    )
    db.add_all([alice, bob])
    db.commit()

    tailor = Business(
        name="Acme Tailors",
        description="Alterations, suits and school uniforms.",
        address="12 Main St",
        phone="555-0101",
        category_id=categories["tailors"].id,
        owner_id=alice.id,
        latitude=5.6037,
        longitude=-0.1870,
    )
    salon = Business(
        name="Elite Hair Salon",
        description="Cuts, braids and colour.",
        address="456 Broadway",
        category_id=categories["hair-salons"].id,
        owner_id=bob.id,
    )
    kiosk = Business(
        name="Mama's Kelewele",
        address="Corner of 3rd Ave and Market Rd",
        category_id=categories["street-food"].id,
    )
    db.add_all([tailor, salon, kiosk])
    db.commit()

    db.add_all([
        Review(business_id=tailor.id, user_id=bob.id, rating=5, comment="Fixed my suit in a day."),
        Review(business_id=salon.id, user_id=alice.id, rating=4, comment="Friendly and on time."),
        Review(business_id=kiosk.id, user_id=alice.id, rating=5),
        Review(business_id=kiosk.id, user_id=bob.id, rating=3, comment="Tasty, long queue."),
    ])
    db.commit()
