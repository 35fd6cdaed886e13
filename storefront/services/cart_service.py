# storefront/services/cart_service.py
from __future__ import annotations
from flask import current_app

from ..extensions import db
from ..model import CartItem, Product, ProductVariant
from ..utils.money import ZERO, to_float
from .pricing import CartLine, load_catalog, price_lines


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product or product.is_active is False:
        raise LookupError("product not found or inactive")
    return product


def _check_variant(product: Product, variant_id: int | None) -> ProductVariant | None:
    if variant_id is None:
        return None
    variant = db.session.get(ProductVariant, variant_id)
    if not variant or variant.product_id != product.id or variant.is_active is False:
        raise LookupError("variant not found for this product")
    return variant


def _find_item(user_id: int, product_id: int, variant_id: int | None) -> CartItem | None:
    q = CartItem.query.filter_by(user_id=user_id, product_id=product_id)
    if variant_id is None:
        q = q.filter(CartItem.variant_id.is_(None))
    else:
        q = q.filter(CartItem.variant_id == variant_id)
    return q.first()


def cart_items(user_id: int) -> list[CartItem]:
    return CartItem.query.filter_by(user_id=user_id).order_by(CartItem.id.asc()).all()


def cart_lines(user_id: int) -> list[CartLine]:
    return [
        CartLine(product_id=i.product_id, quantity=i.quantity, variant_id=i.variant_id)
        for i in cart_items(user_id)
    ]


def add_item(user_id: int, line: CartLine) -> CartItem:
    """Insert a line or bump the quantity of the same product/variant pair."""
    product = _get_product(line.product_id)
    _check_variant(product, line.variant_id)

    item = _find_item(user_id, line.product_id, line.variant_id)
    if item:
        item.quantity = item.quantity + line.quantity
    else:
        item = CartItem(
            user_id=user_id,
            product_id=line.product_id,
            variant_id=line.variant_id,
            quantity=line.quantity,
        )
        db.session.add(item)
    db.session.commit()
    return item


def set_quantity(user_id: int, item_id: int, quantity: int) -> CartItem:
    if quantity < 1:
        raise ValueError("quantity must be >= 1")
    item = CartItem.query.filter_by(id=item_id, user_id=user_id).first()
    if not item:
        raise LookupError("item not found in this cart")
    item.quantity = quantity
    db.session.commit()
    return item


def remove_item(user_id: int, item_id: int) -> None:
    item = CartItem.query.filter_by(id=item_id, user_id=user_id).first()
    if not item:
        raise LookupError("item not found in this cart")
    db.session.delete(item)
    db.session.commit()


def clear_cart(user_id: int, commit: bool = True) -> int:
    n = CartItem.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    if commit:
        db.session.commit()
    current_app.logger.debug("cleared %s cart rows for user %s", n, user_id)
    return n


def cart_summary(user_id: int) -> dict:
    items = cart_items(user_id)
    lines = [CartLine(i.product_id, i.quantity, i.variant_id) for i in items]
    catalog = load_catalog(lines)
    priced, _ = price_lines(lines, catalog)
    price_by_line = {p.line: p for p in priced}

    payload, subtotal = [], ZERO
    for item, ln in zip(items, lines):
        p = price_by_line.get(ln)
        row = item.as_api()
        row["unit_price"] = to_float(p.unit_price) if p else None
        row["line_total"] = to_float(p.line_total) if p else None
        row["available"] = p is not None
        if p:
            subtotal += p.line_total
        payload.append(row)
    return {"items": payload, "subtotal": to_float(subtotal)}
