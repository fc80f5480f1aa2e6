from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .models import ProductStatus


class StoreCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    slug: Optional[str] = None
    owner_id: Optional[int] = None


class StoreResponse(BaseModel):
    id: int
    name: str
    slug: str
    owner_id: Optional[int]
    is_active: bool

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    store_id: int
    name: str = Field(min_length=2, max_length=200)
    slug: Optional[str] = None
    sku: Optional[str] = None
    image_url: Optional[str] = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    inventory: int = Field(default=0, ge=0)
    status: ProductStatus = ProductStatus.ACTIVE


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    sku: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    inventory: Optional[int] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None


class ProductResponse(BaseModel):
    id: int
    store_id: int
    name: str
    slug: str
    sku: Optional[str]
    image_url: Optional[str]
    price: float
    inventory: int
    status: str

    class Config:
        from_attributes = True
