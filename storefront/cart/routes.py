# storefront/cart/routes.py
from __future__ import annotations
from flask import request

from . import bp
from ..model import User
from ..services import cart_service
from ..services.pricing import CartLine
from ..utils.api import ok, err
from ..utils.decorators import login_required


@bp.get("")
@login_required
def get_cart(user: User):
    return ok("cart", cart_service.cart_summary(user.id))


@bp.post("/items")
@login_required
def add_item(user: User):
    """
    Body: { "product_id": int, "variant_id": int | null, "quantity" | "qty": int }
    Adding the same product/variant again increases its quantity.
    """
    data = request.get_json(silent=True) or {}
    if not data.get("product_id"):
        return err("product_id is required", 422)
    try:
        line = CartLine.from_payload(data)
    except ValueError as e:
        return err(str(e), 422)

    try:
        cart_service.add_item(user.id, line)
    except LookupError as e:
        return err(str(e.args[0]), 404)

    return ok("item added", cart_service.cart_summary(user.id), status=201)


@bp.patch("/items/<int:item_id>")
@bp.put("/items/<int:item_id>")
@login_required
def update_item(user: User, item_id: int):
    """Body: { "quantity": int }, must be >= 1 (use DELETE to remove a line)."""
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return err("quantity is required", 422)
    try:
        qty = int(data.get("quantity"))
    except (TypeError, ValueError):
        return err("quantity must be an integer", 422)
    if qty <= 0:
        return err("quantity must be >= 1", 422)

    try:
        cart_service.set_quantity(user.id, item_id, qty)
    except LookupError as e:
        return err(str(e.args[0]), 404)
    return ok("item updated", cart_service.cart_summary(user.id))


@bp.delete("/items/<int:item_id>")
@login_required
def remove_item(user: User, item_id: int):
    try:
        cart_service.remove_item(user.id, item_id)
    except LookupError as e:
        return err(str(e.args[0]), 404)
    return ok("item removed", cart_service.cart_summary(user.id))


@bp.delete("/items")
@login_required
def clear_cart_items(user: User):
    cart_service.clear_cart(user.id)
    return ok("all items removed", cart_service.cart_summary(user.id))
