"""
Authentication gate, authorization policies and the /auth endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import USERS, create_document, get_db, get_document, get_document_by_id
from errors import DuplicateResourceError, ForbiddenError, UnauthorizedError
from schemas import LoginRequest, RegisterRequest, User
from security import TokenExpired, TokenInvalid, create_token, decode_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

NO_PASSWORD = {"password_hash": 0}
USER_SUMMARY = {"name": 1, "email": 1}


def public_user(user: dict) -> dict:
    return {
        "id": user["_id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
    }


def is_admin(user: dict) -> bool:
    return user.get("role") == "admin"


def expand_user(db: Database, doc: Optional[dict]) -> Optional[dict]:
    """Attach ``user`` ({_id, name, email}) next to ``user_id``; None when the account is gone."""
    if doc is None:
        return None
    doc["user"] = get_document_by_id(db, USERS, doc.get("user_id"), projection=USER_SUMMARY)
    return doc


# ===================== Gate =====================

def get_current_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db)) -> dict:
    """Resolve the bearer token to the stored user record (without password hash)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Access denied. No token provided.")

    token = authorization[len("Bearer "):].strip()
    try:
        user_id = decode_token(token)
    except TokenExpired:
        raise UnauthorizedError("Token expired.")
    except TokenInvalid:
        raise UnauthorizedError("Invalid token.")

    user = get_document_by_id(db, USERS, user_id, projection=NO_PASSWORD)
    if not user:
        logger.warning("Token for unknown user %s", user_id)
        raise UnauthorizedError("Invalid token. User not found.")
    return user


# ===================== Policies =====================

def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if not is_admin(user):
        raise ForbiddenError("Access denied. Admin privileges required.")
    return user


def ensure_owner_or_admin(user: dict, owner_id: Optional[str], message: str) -> None:
    """Allow the resource's owner or any admin; everything else is a 403."""
    if is_admin(user):
        return
    if owner_id is None or str(owner_id) != str(user["_id"]):
        raise ForbiddenError(message)


# ===================== Service =====================

def register_user(db: Database, payload: RegisterRequest) -> dict:
    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role="user",
    )
    try:
        created = create_document(db, USERS, user)
    except DuplicateKeyError:
        raise DuplicateResourceError("User with this email already exists")
    logger.info("Registered user %s", created["_id"])
    return created


def authenticate_user(db: Database, email: str, password: str) -> dict:
    user = get_document(db, USERS, {"email": email})
    if not user or not verify_password(password, user["password_hash"]):
        raise UnauthorizedError("Invalid email or password")
    return user


# ===================== Routes =====================

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    user = register_user(db, payload)
    return {
        "message": "User registered successfully",
        "token": create_token(user["_id"]),
        "user": public_user(user),
    }


@router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = authenticate_user(db, payload.email, payload.password)
    return {
        "message": "Login successful",
        "token": create_token(user["_id"]),
        "user": public_user(user),
    }


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"user": public_user(user)}
