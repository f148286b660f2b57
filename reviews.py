"""
Per-dish reviews. One review per (user, menu item) pair, enforced by a unique index.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import ensure_owner_or_admin, expand_user, get_current_user
from database import (MENU_ITEMS, NEWEST_FIRST, REVIEWS, create_document, delete_document, get_db,
                      get_document_by_id, get_documents, parse_object_id, update_document)
from errors import DuplicateResourceError, NotFoundError
from schemas import Review, ReviewIn, ReviewUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])

MENU_ITEM_SUMMARY = {"name": 1, "category": 1}


def expand_review(db: Database, review: Optional[dict]) -> Optional[dict]:
    if review is None:
        return None
    expand_user(db, review)
    review["menu_item_details"] = get_document_by_id(db, MENU_ITEMS, review.get("menu_item"),
                                                     projection=MENU_ITEM_SUMMARY)
    return review


def average_rating(reviews: list) -> str:
    """Mean rating to one decimal, halves rounded up (4.25 -> "4.3")."""
    if not reviews:
        return "0.0"
    mean = Decimal(sum(r["rating"] for r in reviews)) / Decimal(len(reviews))
    return str(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def list_reviews(db: Database, menu_item: Optional[str] = None) -> list:
    filter_q = {}
    if menu_item:
        filter_q["menu_item"] = str(parse_object_id(menu_item, "menu item"))
    return [expand_review(db, r) for r in get_documents(db, REVIEWS, filter_q, sort=NEWEST_FIRST)]


def reviews_for_menu_item(db: Database, menu_item_id: str) -> dict:
    menu_item_id = str(parse_object_id(menu_item_id, "menu item"))
    reviews = get_documents(db, REVIEWS, {"menu_item": menu_item_id}, sort=NEWEST_FIRST)
    return {
        "count": len(reviews),
        "average_rating": average_rating(reviews),
        "data": [expand_user(db, r) for r in reviews],
    }


def _load_review(db: Database, review_id: str) -> dict:
    review = get_document_by_id(db, REVIEWS, parse_object_id(review_id, "review"))
    if not review:
        raise NotFoundError("Review not found")
    return review


def get_review(db: Database, review_id: str) -> dict:
    return expand_review(db, _load_review(db, review_id))


def create_review(db: Database, payload: ReviewIn, caller: dict) -> dict:
    menu_item_id = parse_object_id(payload.menu_item, "menu item")
    if not get_document_by_id(db, MENU_ITEMS, menu_item_id):
        raise NotFoundError("Menu item not found")

    review = Review(
        user_id=str(caller["_id"]),
        menu_item=str(menu_item_id),
        rating=payload.rating,
        comment=payload.comment,
    )
    try:
        created = create_document(db, REVIEWS, review)
    except DuplicateKeyError:
        raise DuplicateResourceError("You have already reviewed this menu item")
    logger.info("Review %s created by %s", created["_id"], caller["_id"])
    return expand_review(db, created)


def update_review(db: Database, review_id: str, payload: ReviewUpdate, caller: dict) -> dict:
    review = _load_review(db, review_id)
    ensure_owner_or_admin(caller, review.get("user_id"), "Access denied. You can only update your own reviews.")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        return expand_review(db, review)
    updated = update_document(db, REVIEWS, parse_object_id(review_id, "review"), changes)
    if updated is None:
        raise NotFoundError("Review not found")
    return expand_review(db, updated)


def delete_review(db: Database, review_id: str, caller: dict) -> dict:
    review = _load_review(db, review_id)
    ensure_owner_or_admin(caller, review.get("user_id"), "Access denied. You can only delete your own reviews.")
    deleted = delete_document(db, REVIEWS, parse_object_id(review_id, "review"))
    if deleted is None:
        raise NotFoundError("Review not found")
    return deleted


# ===================== Routes =====================

@router.get("")
def get_reviews(menu_item: Optional[str] = None, db: Database = Depends(get_db)):
    reviews = list_reviews(db, menu_item)
    return {"count": len(reviews), "data": reviews}


@router.get("/menu-item/{menu_item_id}")
def get_reviews_for_item(menu_item_id: str, db: Database = Depends(get_db)):
    return reviews_for_menu_item(db, menu_item_id)


@router.get("/{review_id}")
def get_one_review(review_id: str, db: Database = Depends(get_db)):
    return {"data": get_review(db, review_id)}


@router.post("", status_code=201)
def post_review(payload: ReviewIn, db: Database = Depends(get_db), user: dict = Depends(get_current_user)):
    return {"message": "Review created successfully", "data": create_review(db, payload, user)}


@router.put("/{review_id}")
def put_review(review_id: str, payload: ReviewUpdate, db: Database = Depends(get_db),
               user: dict = Depends(get_current_user)):
    return {"message": "Review updated successfully", "data": update_review(db, review_id, payload, user)}


@router.delete("/{review_id}")
def remove_review(review_id: str, db: Database = Depends(get_db), user: dict = Depends(get_current_user)):
    return {"message": "Review deleted successfully", "data": delete_review(db, review_id, user)}
