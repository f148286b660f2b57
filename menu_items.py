"""
Menu catalog. Reads are public, writes are admin-only.
"""
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from auth import require_admin
from database import (MENU_ITEMS, NEWEST_FIRST, create_document, delete_document, get_db,
                      get_document_by_id, get_documents, parse_object_id, update_document)
from errors import NotFoundError
from schemas import MenuItemIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/menu-items", tags=["menu-items"])


def build_menu_filter(category: Optional[str] = None, min_price: Optional[float] = None,
                      max_price: Optional[float] = None, search: Optional[str] = None) -> dict:
    filter_q = {}
    if category:
        filter_q["category"] = category
    if min_price is not None or max_price is not None:
        price_filter = {}
        if min_price is not None:
            price_filter["$gte"] = min_price
        if max_price is not None:
            price_filter["$lte"] = max_price
        filter_q["price"] = price_filter
    if search:
        pattern = re.escape(search)
        filter_q["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    return filter_q


def list_menu_items(db: Database, **filters) -> list:
    return get_documents(db, MENU_ITEMS, build_menu_filter(**filters), sort=NEWEST_FIRST)


def get_menu_item(db: Database, item_id: str) -> dict:
    item = get_document_by_id(db, MENU_ITEMS, parse_object_id(item_id, "menu item"))
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def create_menu_item(db: Database, payload: MenuItemIn) -> dict:
    item = create_document(db, MENU_ITEMS, payload.to_document())
    logger.info("Menu item %s created", item["_id"])
    return item


def replace_menu_item(db: Database, item_id: str, payload: MenuItemIn) -> dict:
    """Overwrite every catalog field of an item; an omitted image falls back to the default."""
    item = update_document(db, MENU_ITEMS, parse_object_id(item_id, "menu item"), payload.to_document())
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


def delete_menu_item(db: Database, item_id: str) -> dict:
    # orders and reviews keep their reference; see DESIGN.md
    item = delete_document(db, MENU_ITEMS, parse_object_id(item_id, "menu item"))
    if item is None:
        raise NotFoundError("Menu item not found")
    logger.info("Menu item %s deleted", item_id)
    return item


# ===================== Routes =====================

@router.get("")
def get_items(category: Optional[str] = None, min_price: Optional[float] = None,
              max_price: Optional[float] = None, search: Optional[str] = None,
              db: Database = Depends(get_db)):
    items = list_menu_items(db, category=category, min_price=min_price, max_price=max_price, search=search)
    return {"count": len(items), "data": items}


@router.get("/{item_id}")
def get_item(item_id: str, db: Database = Depends(get_db)):
    return {"data": get_menu_item(db, item_id)}


@router.post("", status_code=201)
def create_item(payload: MenuItemIn, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return {"message": "Menu item created successfully", "data": create_menu_item(db, payload)}


@router.put("/{item_id}")
def update_item(item_id: str, payload: MenuItemIn, db: Database = Depends(get_db),
                admin: dict = Depends(require_admin)):
    return {"message": "Menu item updated successfully", "data": replace_menu_item(db, item_id, payload)}


@router.delete("/{item_id}")
def delete_item(item_id: str, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return {"message": "Menu item deleted successfully", "data": delete_menu_item(db, item_id)}
