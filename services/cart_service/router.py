"""Every cart route acts on the signed-in user's own cart."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_user

from .schemas import CartItemCreate, CartItemUpdate, CartResponse
from .service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartResponse)
async def get_cart(user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await CartService.get_cart(db, int(user_id))


@router.post("/items", response_model=CartResponse)
async def add_item(
    item: CartItemCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.add_item(db, int(user_id), item)


@router.put("/items/{product_id}", response_model=CartResponse)
async def update_item(
    product_id: int,
    changes: CartItemUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.update_item(db, int(user_id), product_id, changes)


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: int,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.remove_item(db, int(user_id), product_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Deletes all items in the cart."""
    await CartService.clear_cart(db, int(user_id))
