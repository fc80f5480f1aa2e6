import re

from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import ConflictError, NotFoundError
from shared.utils import utcnow

from .models import Product, Store
from .repository import ProductRepository, StoreRepository
from .schemas import ProductCreate, ProductUpdate, StoreCreate


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9\-_]", "-", value.lower())
    return re.sub(r"-+", "-", slug).strip("-")


class ProductService:

    @staticmethod
    async def create_store(db: AsyncSession, data: StoreCreate) -> Store:
        slug = data.slug or slugify(data.name)
        if await StoreRepository.get_store_by_slug(db, slug):
            raise ConflictError(f"Store slug '{slug}' is already taken")
        store = Store(name=data.name, slug=slug, owner_id=data.owner_id)
        return await StoreRepository.create_store(db, store)

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
        if not await StoreRepository.get_store_by_id(db, data.store_id):
            raise NotFoundError(f"Store {data.store_id} not found")
        product = Product(
            store_id=data.store_id,
            name=data.name,
            slug=data.slug or f"{slugify(data.name)}-{data.store_id}",
            sku=data.sku,
            image_url=data.image_url,
            price=data.price,
            inventory=data.inventory,
            status=data.status.value,
        )
        return await ProductRepository.create_product(db, product)

    @staticmethod
    async def list_products(db: AsyncSession, query: str | None = None):
        products = await ProductRepository.get_all_products(db)
        if not query:
            return products

        query_words = set(query.lower().split())
        return [p for p in products if query_words & set(p.name.lower().split())]

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    @staticmethod
    async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product:
        product = await ProductService.get_product(db, product_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in changes:
            changes["status"] = changes["status"].value
        for field, value in changes.items():
            setattr(product, field, value)
        product.updated_at = utcnow()
        return await ProductRepository.update_product(db, product)
