from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from pymongo import ReturnDocument

from auth import get_current_user, hash_password, public_user, require_admin, token_for_user, verify_password
from database import Database, get_db, now_utc, oid
from errors import AuthError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from schemas import LoginBody, ProfileUpdateBody, SignupBody, User

router = APIRouter(tags=["users"])


class StatusBody(BaseModel):
    is_active: bool


class RoleBody(BaseModel):
    role: Literal["user", "admin", "moderator"]


# ----------------------- Service -----------------------

def create_user(db: Database, body: SignupBody) -> dict:
    email = body.email.lower()
    if db["user"].find_one({"email": email}):
        raise ConflictError("Email already registered")
    user = User(
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        email=email,
        password_hash=hash_password(body.password),
    )
    user_id = db.create_document("user", user)
    return db["user"].find_one({"_id": oid(user_id)})


def authenticate(db: Database, email: str, password: str) -> dict:
    user = db["user"].find_one({"email": email.lower()})
    if not user or not verify_password(password, user.get("password_hash")):
        raise AuthError("Invalid credentials")
    if not user.get("is_active", True):
        raise ForbiddenError("Account is disabled")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"last_login": now_utc()}})
    return user


def update_profile(db: Database, user_id: str, body: ProfileUpdateBody) -> dict:
    update = body.model_dump(exclude_none=True)
    password = update.pop("password", None)
    if password:
        update["password_hash"] = hash_password(password)
    if not update:
        raise ValidationError("Nothing to update")
    update["updated_at"] = now_utc()
    db["user"].update_one({"_id": oid(user_id)}, {"$set": update})
    return db["user"].find_one({"_id": oid(user_id)})


def set_user_fields(db: Database, user_id: str, fields: dict) -> dict:
    fields["updated_at"] = now_utc()
    user = db["user"].find_one_and_update(
        {"_id": oid(user_id)}, {"$set": fields}, return_document=ReturnDocument.AFTER
    )
    if not user:
        raise NotFoundError("User not found")
    return user


def delete_user(db: Database, user_id: str):
    res = db["user"].delete_one({"_id": oid(user_id)})
    if res.deleted_count == 0:
        raise NotFoundError("User not found")
    db["cart"].delete_one({"user_id": user_id})
    db["wishlist"].delete_one({"user_id": user_id})


# ----------------------- Routes -----------------------

@router.post("/user/signup", status_code=201)
def signup(body: SignupBody, request: Request, db: Database = Depends(get_db)):
    user = create_user(db, body)
    return {
        "success": True,
        "message": "Account created",
        "data": {"token": token_for_user(request, user), "user": public_user(user)},
    }


@router.post("/user/login")
def login(body: LoginBody, request: Request, db: Database = Depends(get_db)):
    user = authenticate(db, body.email, body.password)
    return {
        "success": True,
        "message": "Login successful",
        "data": {"token": token_for_user(request, user), "user": public_user(user)},
    }


@router.get("/userDetailForProfile")
def profile(user=Depends(get_current_user)):
    return {"success": True, "data": user}


@router.put("/update/user")
def update_user(body: ProfileUpdateBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    updated = update_profile(db, user["id"], body)
    return {"success": True, "message": "Profile updated", "data": public_user(updated)}


@router.delete("/user")
def delete_own_account(user=Depends(get_current_user), db: Database = Depends(get_db)):
    delete_user(db, user["id"])
    return {"success": True, "message": "Account deleted"}


@router.get("/get/allUsers")
def all_users(admin=Depends(require_admin), db: Database = Depends(get_db)):
    users = db["user"].find({}).sort("created_at", -1)
    return {"success": True, "data": [public_user(u) for u in users]}


@router.put("/update/status/{user_id}")
def update_status(user_id: str, body: StatusBody, admin=Depends(require_admin), db: Database = Depends(get_db)):
    user = set_user_fields(db, user_id, {"is_active": body.is_active})
    return {"success": True, "message": "User status updated", "data": public_user(user)}


@router.put("/update/role/{user_id}")
def update_role(user_id: str, body: RoleBody, admin=Depends(require_admin), db: Database = Depends(get_db)):
    user = set_user_fields(db, user_id, {"role": body.role})
    return {"success": True, "message": "User role updated", "data": public_user(user)}


@router.delete("/delete/{user_id}")
def delete_user_by_id(user_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    if user_id == admin["id"]:
        raise ValidationError("You cannot delete your own admin account here")
    delete_user(db, user_id)
    return {"success": True, "message": "User deleted"}
