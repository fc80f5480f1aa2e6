from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .schemas import (
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    StoreCreate,
    StoreResponse,
)
from .service import ProductService

# Catalogue writes are back-office only
router = APIRouter(prefix="/catalog", tags=["Catalogue"], dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter(prefix="/catalog", tags=["Catalogue"])


@router.post("/stores", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
async def create_store(store: StoreCreate, db: AsyncSession = Depends(get_db)):
    return await ProductService.create_store(db, store)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await ProductService.create_product(db, product)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(product_id: int, changes: ProductUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService.update_product(db, product_id, changes)


@public_router.get("/products", response_model=list[ProductResponse])
async def list_products(
    query: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.list_products(db, query)


@public_router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_product(db, product_id)
