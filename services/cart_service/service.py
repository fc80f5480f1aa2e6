import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.pricing import line_total, price_lines
from services.product_service.models import Product
from services.product_service.repository import ProductRepository
from shared.errors import InsufficientInventoryError, NotFoundError, ValidationError

from .models import CartItem
from .repository import CartRepository
from .schemas import CartItemCreate, CartItemUpdate

logger = structlog.get_logger(__name__)


def _check_available(product: Product, quantity: int) -> None:
    if not product.is_active:
        raise ValidationError(f"{product.name} is not available for purchase")
    if quantity > product.inventory:
        raise InsufficientInventoryError(
            [
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "requested": quantity,
                    "available": product.inventory,
                }
            ]
        )


class CartService:

    @staticmethod
    async def get_cart(db: AsyncSession, user_id: int) -> dict:
        """The cart priced with live catalogue data.

        Lines whose product has been removed from the catalogue are skipped.
        """
        cart = await CartRepository.get_cart(db, user_id)
        items = list(cart.items) if cart else []
        products = await ProductRepository.get_products_by_ids(db, [item.product_id for item in items])

        lines = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                continue
            lines.append(
                {
                    "product_id": product.id,
                    "store_id": product.store_id,
                    "name": product.name,
                    "sku": product.sku,
                    "image_url": product.image_url,
                    "unit_price": product.price,
                    "quantity": item.quantity,
                    "line_total": line_total(product.price, item.quantity),
                    "available": product.inventory,
                }
            )

        totals = price_lines((line["unit_price"], line["quantity"]) for line in lines)
        return {
            "items": lines,
            "item_count": sum(line["quantity"] for line in lines),
            "subtotal": totals.subtotal,
            "shipping_cost": totals.shipping_cost,
            "tax_amount": totals.tax_amount,
            "total_amount": totals.total_amount,
        }

    @staticmethod
    async def add_item(db: AsyncSession, user_id: int, data: CartItemCreate) -> dict:
        product = await ProductRepository.get_product_by_id(db, data.product_id)
        if product is None:
            raise NotFoundError(f"Product {data.product_id} not found")

        cart = await CartRepository.get_or_create_cart(db, user_id)
        existing = CartRepository.find_item(cart, product.id)
        quantity = data.quantity + (existing.quantity if existing else 0)
        _check_available(product, quantity)

        if existing:
            existing.quantity = quantity
        else:
            cart.items.append(CartItem(product_id=product.id, quantity=quantity))
        await CartRepository.save(db, cart)

        logger.info("cart_item_added", user_id=user_id, product_id=product.id, quantity=quantity)
        return await CartService.get_cart(db, user_id)

    @staticmethod
    async def update_item(db: AsyncSession, user_id: int, product_id: int, data: CartItemUpdate) -> dict:
        cart = await CartRepository.get_cart(db, user_id)
        item = CartRepository.find_item(cart, product_id) if cart else None
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in the cart")

        if data.quantity <= 0:
            cart.items.remove(item)
        else:
            product = await ProductRepository.get_product_by_id(db, product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            _check_available(product, data.quantity)
            item.quantity = data.quantity
        await CartRepository.save(db, cart)

        logger.info("cart_item_updated", user_id=user_id, product_id=product_id, quantity=max(data.quantity, 0))
        return await CartService.get_cart(db, user_id)

    @staticmethod
    async def remove_item(db: AsyncSession, user_id: int, product_id: int) -> dict:
        cart = await CartRepository.get_cart(db, user_id)
        item = CartRepository.find_item(cart, product_id) if cart else None
        if item is not None:
            cart.items.remove(item)
            await CartRepository.save(db, cart)
        return await CartService.get_cart(db, user_id)

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: int) -> None:
        await CartRepository.clear_items(db, user_id)
        await db.commit()

    @staticmethod
    async def checkout_lines(db: AsyncSession, user_id: int) -> list[tuple[int, int]]:
        """(product_id, quantity) pairs the order creator should buy."""
        cart = await CartRepository.get_cart(db, user_id)
        if cart is None:
            return []
        return [(item.product_id, item.quantity) for item in cart.items]
