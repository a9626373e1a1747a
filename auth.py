import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.hash import bcrypt

from database import Database, get_db, oid, serialize_doc

logger = logging.getLogger(__name__)

JWT_ALGO = "HS256"
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.verify(password, password_hash)


def create_token(payload: dict, secret: str, expires_days: int = 7) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=expires_days)
    to_encode = {**payload, "exp": exp}
    return jwt.encode(to_encode, secret, algorithm=JWT_ALGO)


def decode_token(token: str, secret: str) -> dict:
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def token_for_user(request: Request, user: dict) -> str:
    settings = request.app.state.settings
    payload = {"id": str(user["_id"]), "email": user["email"], "role": user.get("role", "user")}
    return create_token(payload, settings.jwt_secret, settings.jwt_expires_days)


def public_user(user: dict) -> dict:
    data = serialize_doc(user)
    data.pop("password_hash", None)
    return data


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
):
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authorization token required")
    payload = decode_token(credentials.credentials, request.app.state.settings.jwt_secret)
    user_id = payload.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = db["user"].find_one({"_id": oid(user_id)})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is disabled")
    return public_user(user)


async def require_admin(user=Depends(get_current_user)):
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin only")
    return user
