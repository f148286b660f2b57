"""
Admin-only user management: listing accounts and toggling roles.
"""
import logging

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.database import Database

from auth import NO_PASSWORD, public_user, require_admin
from database import NEWEST_FIRST, USERS, get_db, get_document, get_documents, update_document
from errors import BusinessRuleError, DuplicateResourceError, NotFoundError
from schemas import RoleChangeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def list_users(db: Database) -> list:
    return get_documents(db, USERS, sort=NEWEST_FIRST, projection=NO_PASSWORD)


def _find_by_email(db: Database, email: str) -> dict:
    user = get_document(db, USERS, {"email": email}, projection=NO_PASSWORD)
    if not user:
        raise NotFoundError("User not found")
    return user


def _set_role(db: Database, user: dict, role: str) -> dict:
    updated = update_document(db, USERS, ObjectId(user["_id"]), {"role": role}, projection=NO_PASSWORD)
    if updated is None:
        raise NotFoundError("User not found")
    return updated


def promote_user(db: Database, email: str, caller: dict) -> dict:
    user = _find_by_email(db, email)
    if user["role"] == "admin":
        raise DuplicateResourceError("User is already an admin")
    updated = _set_role(db, user, "admin")
    logger.info("User %s promoted to admin by %s", user["_id"], caller["_id"])
    return updated


def demote_user(db: Database, email: str, caller: dict) -> dict:
    user = _find_by_email(db, email)
    if user["role"] == "user":
        raise DuplicateResourceError("User is already a regular user")
    # an admin may not lock themselves out
    if user["_id"] == str(caller["_id"]):
        raise BusinessRuleError("You cannot demote yourself")
    updated = _set_role(db, user, "user")
    logger.info("User %s demoted to user by %s", user["_id"], caller["_id"])
    return updated


# ===================== Routes =====================

@router.get("/users")
def get_users(db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    users = list_users(db)
    return {"count": len(users), "data": users}


@router.post("/promote")
def promote(payload: RoleChangeRequest, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    user = promote_user(db, payload.email, admin)
    return {"message": "User promoted to admin successfully", "user": public_user(user)}


@router.post("/demote")
def demote(payload: RoleChangeRequest, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    user = demote_user(db, payload.email, admin)
    return {"message": "Admin demoted to user successfully", "user": public_user(user)}
