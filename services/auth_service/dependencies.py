from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import ForbiddenError
from shared.security.dependencies import get_current_user

from .models import User
from .repository import UserRepository


async def get_current_admin(
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Admin-only routes: the token's user must exist, be active and hold the admin role."""
    user = await UserRepository.get_by_id(db, int(user_id))
    if user is None or not user.is_active or not user.is_admin:
        raise ForbiddenError("Unauthorized")
    return user
