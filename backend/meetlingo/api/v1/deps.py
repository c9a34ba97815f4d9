# meetlingo/api/v1/deps.py
from fastapi import Header, HTTPException, Request, status
from meetlingo.core.security import decode_access_token
from meetlingo.models.user import User


async def user_from_token(token: str | None) -> User:
    """
    Resolve a session token to its user.

    Shared by the HTTP dependency below and the WebSocket handshakes, which
    carry the token inside their first message instead of a header.

    Raises:
        HTTPException (401): AUTH_REQUIRED / AUTH_INVALID_TOKEN / AUTH_USER_NOT_FOUND
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_REQUIRED")

    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_INVALID_TOKEN")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_USER_NOT_FOUND")
    return user


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
):
    """
    FastAPI dependency to get the current authenticated user.

    The session token is taken from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie (accessToken) - fallback method

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": str(user.id)}
    """
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    if not token:
        token = request.cookies.get("accessToken")
    return await user_from_token(token)


# Application close code for a WebSocket handshake that failed authentication
WS_AUTH_FAILED = 4401


def language_code(msg: dict) -> str | None:
    """`languageCode` from a socket frame; anything but a non-blank string counts as absent."""
    value = msg.get("languageCode")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
