from typing import List, Optional

from pydantic import BaseModel, Field


class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int  # zero or less removes the item


class CartLineResponse(BaseModel):
    product_id: int
    store_id: int
    name: str
    sku: Optional[str]
    image_url: Optional[str]
    unit_price: float
    quantity: int
    line_total: float
    available: int


class CartResponse(BaseModel):
    items: List[CartLineResponse] = []
    item_count: int
    subtotal: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
