from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer, APIKeyHeader
from .jwt_handler import verify_access_token
from .api_key import verify_api_key

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# Defines the expected internal service header
api_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_token(token: str) -> str:
    payload = verify_access_token(token)
    if payload is None:
        raise _credentials_exception()

    user_id: str = payload.get("sub")
    if user_id is None:
        raise _credentials_exception()
    return user_id


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> str:
    """Dependency to validate JWT and return the user ID (sub)."""
    if not token:
        raise _credentials_exception()

    user_id = _user_id_from_token(token)
    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = user_id
    return user_id


async def get_optional_user(request: Request, token: str = Depends(oauth2_scheme)) -> str | None:
    """Like get_current_user, but anonymous callers (guest checkout) get None.

    A token that is present but invalid is still rejected.
    """
    if not token:
        return None

    user_id = _user_id_from_token(token)
    request.state.user_id = user_id
    return user_id


async def verify_internal_api_key(api_key: str = Depends(api_key_header)) -> bool:
    """Dependency to validate back-office requests."""
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header"
        )
    return True
