# meetlingo/api/v1/routers/auth.py
from fastapi import APIRouter, HTTPException, Response, status, Depends
from pydantic import BaseModel
from meetlingo.core.security import verify_password, create_access_token, hash_password
from meetlingo.api.v1.deps import get_current_user
from meetlingo.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])

class LoginRequest(BaseModel):
    username: str
    password: str

class RegisterIn(BaseModel):
    username: str
    name: str | None = None
    email: str | None = None
    password: str


def _user_out(user: User) -> dict:
    return {"id": str(user.id), "username": user.username, "name": user.display_name,
            "email": user.email, "role": user.role}


@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a new user account.

    The display name is what other participants see next to this user's
    captions; it defaults to the username.

    Error codes:
        - BAD_REQUEST: Missing username or password
        - USERNAME_EXISTS: Username already taken
        - EMAIL_EXISTS: Email already registered
    """
    # Basic validation, avoid pydantic error becoming 500
    if not body.username or not body.password:
        return {"success": False, "error": {"code": "BAD_REQUEST", "message": "username/password required"}}
    if await User.get_or_none(username=body.username):
        return {"success": False, "error": {"code": "USERNAME_EXISTS", "message": "Username already exists"}}
    if body.email and await User.get_or_none(email=body.email):
        return {"success": False, "error": {"code": "EMAIL_EXISTS", "message": "Email already registered"}}
    u = await User.create(
        username=body.username,
        name=(body.name.strip() if body.name else None),
        email=(body.email or None),
        password_hash=hash_password(body.password),
        role="user",
    )
    return {"success": True, "data": _user_out(u)}

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate user and create a session token.

    The token is returned in the body and also set as an HttpOnly
    "accessToken" cookie for browser clients.

    Raises:
        HTTPException (401): If credentials are invalid
    """
    user = await User.get_or_none(username=payload.username)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code": "AUTH_INVALID_CREDENTIALS", "message": "Incorrect username or password"})
    token = create_access_token(str(user.id), user.role)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": {"user": _user_out(user), "accessToken": token}}

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"success": True, "data": _user_out(user)}

@router.post("/logout")
async def logout(response: Response):
    """
    Clear the access token cookie. The JWT itself stays valid until it expires.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
