# meetlingo/core/security.py
"""
Security module for authentication.
Handles password hashing and session JWT creation/validation.
"""
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext

from meetlingo.config import settings

# Argon2 is a modern, secure password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Note: Never store plain text passwords. Always use this function before saving.
    """
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

def create_access_token(user_id: str, role: str) -> str:
    """
    Create a session JWT for an authenticated user.

    Token payload includes:
        - sub: Subject (user ID)
        - role: User role for authorization
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + dt.timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def decode_access_token(token: str) -> dict:
    """
    Decode and validate a session JWT.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
