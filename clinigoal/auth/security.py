# clinigoal/auth/security.py
from datetime import datetime, timedelta

from fastapi import Depends, Header
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase
from passlib.context import CryptContext

from clinigoal import config
from clinigoal.database import get_db
from clinigoal.errors import Forbidden, NotFound, Unauthorized

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_USER = "user"
ROLE_ADMIN = "admin"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or Expired Token")


# ==================== DEPENDENCIES ====================

def verify_token(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Unauthorized")

    token = authorization.split(" ", 1)[1]
    payload = decode_access_token(token)
    if not payload.get("sub"):
        raise Unauthorized("Invalid token: missing subject")
    return payload


async def get_current_user(
    payload: dict = Depends(verify_token),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    Dependency: resolves the user behind a user token

    Raises:
        401: Invalid token
        403: Token is not a user token
        404: User no longer exists
    """
    if payload.get("role") != ROLE_USER:
        raise Forbidden("User token required")

    user = await db.users.find_one({"user_id": payload["sub"]})
    if not user:
        raise NotFound("User not found")
    return user


def require_admin(payload: dict = Depends(verify_token)) -> dict:
    """Dependency: only admin tokens pass"""
    if payload.get("role") != ROLE_ADMIN:
        raise Forbidden("Access denied. Admin privileges required.")
    return payload
