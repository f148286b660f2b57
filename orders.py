"""
Customer orders.

Line items capture the dish name and unit price at creation time, so later catalog
edits (or deletions) never change an existing order.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from auth import ensure_owner_or_admin, expand_user, get_current_user, is_admin, require_admin
from database import (MENU_ITEMS, NEWEST_FIRST, ORDERS, create_document, delete_document, get_db,
                      get_document_by_id, get_documents, parse_object_id, update_document)
from errors import BusinessRuleError, MissingInputError, NotFoundError
from schemas import ORDER_STATUSES, CreateOrderRequest, Order, OrderItem, UpdateOrderStatusRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

MENU_ITEM_SUMMARY = {"name": 1, "category": 1, "image_url": 1}


def expand_order(db: Database, order: Optional[dict]) -> Optional[dict]:
    """Attach the owner and each line's current catalog entry (None once the dish is deleted)."""
    if order is None:
        return None
    expand_user(db, order)
    for line in order.get("items", []):
        line["menu_item_details"] = get_document_by_id(db, MENU_ITEMS, line.get("menu_item"),
                                                       projection=MENU_ITEM_SUMMARY)
    return order


def list_orders(db: Database, caller: dict) -> list:
    filter_q = {}
    if not is_admin(caller):
        filter_q["user_id"] = str(caller["_id"])
    return [expand_order(db, order) for order in get_documents(db, ORDERS, filter_q, sort=NEWEST_FIRST)]


def get_order(db: Database, order_id: str, caller: dict) -> dict:
    order = get_document_by_id(db, ORDERS, parse_object_id(order_id, "order"))
    if not order:
        raise NotFoundError("Order not found")
    ensure_owner_or_admin(caller, order.get("user_id"), "Access denied. You can only view your own orders.")
    return expand_order(db, order)


def build_order_items(db: Database, payload: CreateOrderRequest) -> list:
    """Resolve every requested line against the catalog before anything is written."""
    order_items = []
    for line in payload.items:
        menu_item = get_document_by_id(db, MENU_ITEMS, line.menu_item)
        if not menu_item:
            raise NotFoundError(f"Menu item with ID {line.menu_item} not found")
        if line.quantity < 1:
            raise BusinessRuleError("Quantity must be at least 1")
        order_items.append(OrderItem(
            menu_item=menu_item["_id"],
            name=menu_item["name"],
            quantity=line.quantity,
            price=menu_item["price"],
        ))
    return order_items


def create_order(db: Database, payload: CreateOrderRequest, caller: dict) -> dict:
    if not payload.items:
        raise BusinessRuleError("Order must contain at least one item")
    items = build_order_items(db, payload)
    total = round(sum(i.price * i.quantity for i in items), 2)
    order = Order(user_id=str(caller["_id"]), items=items, total=total)
    created = create_document(db, ORDERS, order)
    logger.info("Order %s created by %s (%d items)", created["_id"], caller["_id"], len(items))
    return expand_order(db, created)


def update_order_status(db: Database, order_id: str, status: Optional[str]) -> dict:
    _id = parse_object_id(order_id, "order")
    if not status:
        raise MissingInputError("Status is required")
    if status not in ORDER_STATUSES:
        raise BusinessRuleError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
    order = update_document(db, ORDERS, _id, {"status": status})
    if order is None:
        raise NotFoundError("Order not found")
    logger.info("Order %s moved to %s", order_id, status)
    return expand_order(db, order)


def delete_order(db: Database, order_id: str) -> dict:
    order = delete_document(db, ORDERS, parse_object_id(order_id, "order"))
    if order is None:
        raise NotFoundError("Order not found")
    return order


# ===================== Routes =====================

@router.get("")
def get_orders(db: Database = Depends(get_db), user: dict = Depends(get_current_user)):
    orders = list_orders(db, user)
    return {"count": len(orders), "data": orders}


@router.get("/{order_id}")
def get_one_order(order_id: str, db: Database = Depends(get_db), user: dict = Depends(get_current_user)):
    return {"data": get_order(db, order_id, user)}


@router.post("", status_code=201)
def place_order(payload: CreateOrderRequest, db: Database = Depends(get_db),
                user: dict = Depends(get_current_user)):
    return {"message": "Order created successfully", "data": create_order(db, payload, user)}


@router.put("/{order_id}")
def set_order_status(order_id: str, payload: UpdateOrderStatusRequest, db: Database = Depends(get_db),
                     admin: dict = Depends(require_admin)):
    return {"message": "Order status updated successfully", "data": update_order_status(db, order_id, payload.status)}


@router.delete("/{order_id}")
def remove_order(order_id: str, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return {"message": "Order deleted successfully", "data": delete_order(db, order_id)}
