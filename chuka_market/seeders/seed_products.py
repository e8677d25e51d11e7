import asyncio
import random
from decimal import Decimal

from faker import Faker

from chuka_market.core.config import get_settings
from chuka_market.db.database import create_engine, create_session_factory, init_db
from chuka_market.models.enums.product_category import ProductCategory
from chuka_market.models.product_model import Product

fake = Faker()

PRODUCTS_PER_CATEGORY = 5
LOCATIONS = ["Chuka", "Ndagani", "Meru", "Embu", "Chogoria"]


def fake_product(category: ProductCategory) -> Product:
    return Product(
        title=fake.sentence(nb_words=4).rstrip("."),
        description=fake.paragraph(nb_sentences=3),
        price=Decimal(f"{random.uniform(100, 50000):.2f}"),
        category=category,
        location=random.choice(LOCATIONS),
        phone_number=f"07{random.randint(10000000, 99999999)}",
    )


async def seed_products():
    engine = create_engine(get_settings())
    await init_db(engine)
    session_factory = create_session_factory(engine)

    async with session_factory() as session:
        count = 0
        for category in ProductCategory:
            for _ in range(PRODUCTS_PER_CATEGORY):
                session.add(fake_product(category))
                count += 1
        await session.commit()
        print(f"Added {count} products.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_products())
