from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product, ProductStatus, Store


class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_all_products(db: AsyncSession):
        result = await db.execute(select(Product).order_by(Product.id))
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: Iterable[int]) -> dict[int, Product]:
        result = await db.execute(select(Product).where(Product.id.in_(list(product_ids))))
        return {product.id: product for product in result.scalars().all()}

    @staticmethod
    async def update_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def decrement_inventory(db: AsyncSession, product_id: int, quantity: int) -> bool:
        """Atomically take `quantity` units if they are still available.

        Conditional UPDATE instead of read-then-write: two checkouts racing for
        the last unit cannot both succeed. Does not commit.
        """
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.status == ProductStatus.ACTIVE.value,
                Product.inventory >= quantity,
            )
            .values(inventory=Product.inventory - quantity)
            .execution_options(synchronize_session="evaluate")
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def restore_inventory(db: AsyncSession, product_id: int, quantity: int) -> bool:
        """Give units back (order cancelled). Does not commit."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(inventory=Product.inventory + quantity)
            .execution_options(synchronize_session="evaluate")
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


class StoreRepository:

    @staticmethod
    async def create_store(db: AsyncSession, store: Store):
        db.add(store)
        await db.commit()
        await db.refresh(store)
        return store

    @staticmethod
    async def get_store_by_id(db: AsyncSession, store_id: int) -> Optional[Store]:
        result = await db.execute(select(Store).where(Store.id == store_id))
        return result.scalars().first()

    @staticmethod
    async def get_store_by_slug(db: AsyncSession, slug: str) -> Optional[Store]:
        result = await db.execute(select(Store).where(Store.slug == slug))
        return result.scalars().first()
