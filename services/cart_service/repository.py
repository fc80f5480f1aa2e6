from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.utils import utcnow

from .models import Cart, CartItem


class CartRepository:

    @staticmethod
    async def get_cart(db: AsyncSession, user_id: int) -> Optional[Cart]:
        result = await db.execute(select(Cart).where(Cart.user_id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_or_create_cart(db: AsyncSession, user_id: int) -> Cart:
        cart = await CartRepository.get_cart(db, user_id)
        if cart is None:
            cart = Cart(user_id=user_id, items=[])
            db.add(cart)
            await db.flush()
        return cart

    @staticmethod
    def find_item(cart: Cart, product_id: int) -> Optional[CartItem]:
        return next((item for item in cart.items if item.product_id == product_id), None)

    @staticmethod
    async def save(db: AsyncSession, cart: Cart) -> Cart:
        cart.updated_at = utcnow()
        await db.commit()
        return cart

    @staticmethod
    async def clear_items(db: AsyncSession, user_id: int) -> None:
        """Empties the user's cart. Does not commit."""
        cart = await CartRepository.get_cart(db, user_id)
        if cart is None:
            return
        # delete-orphan removes the rows on flush
        cart.items.clear()
        cart.updated_at = utcnow()
