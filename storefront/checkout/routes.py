# storefront/checkout/routes.py
from __future__ import annotations
from flask import request

from . import bp
from ..errors import AddressRequired
from ..extensions import db
from ..model import Address, User
from ..services import cart_service
from ..services.checkout_service import CheckoutRequest, GuestContact, build_quote, place_order
from ..services.pricing import CartLine
from ..utils.api import ok, err
from ..utils.decorators import current_user


def _lines_from(data: dict, user: User | None) -> tuple[list[CartLine], bool]:
    """Quick-buy items from the body win over the stored cart. Returns (lines, quick_buy)."""
    items = data.get("items")
    if items:
        if not isinstance(items, list):
            raise ValueError("items must be a list")
        return [CartLine.from_payload(x) for x in items], True
    if user is None:
        return [], False
    return cart_service.cart_lines(user.id), False


def _address_from(data: dict, user: User | None) -> dict | None:
    address_id = data.get("address_id")
    if address_id is not None:
        addr = db.session.get(Address, address_id) if user else None
        if not addr or addr.user_id != user.id:
            raise AddressRequired("selected address not found")
        return addr.snapshot()
    address = data.get("address")
    return address if isinstance(address, dict) else None


@bp.post("/quote")
def quote():
    """Totals for the current cart (or quick-buy items) with an optional coupon."""
    data = request.get_json(silent=True) or {}
    user = current_user(optional=True)
    try:
        lines, _ = _lines_from(data, user)
    except (ValueError, AttributeError) as e:
        return err(str(e), 422)
    q = build_quote(lines, data.get("coupon_code"))
    return ok("quote", q.as_api())


@bp.post("")
def checkout():
    """
    Body:
      items?:          [{product_id, variant_id?, quantity}]  (quick buy / guest)
      address_id? | address?: {...}
      payment_method:  "online" | "cod"
      coupon_code?:    str
      guest?:          {name, email, phone}   (required without a login)
    Header: Idempotency-Key (optional)
    """
    data = request.get_json(silent=True) or {}
    user = current_user(optional=True)
    try:
        lines, quick_buy = _lines_from(data, user)
    except (ValueError, AttributeError) as e:
        return err(str(e), 422)

    guest = data.get("guest") if isinstance(data.get("guest"), dict) else {}
    req = CheckoutRequest(
        lines=lines,
        address=_address_from(data, user),
        payment_method=data.get("payment_method"),
        coupon_code=data.get("coupon_code"),
        user_id=user.id if user else None,
        user_email=user.email if user else None,
        guest=None if user else GuestContact(
            name=str(guest.get("name") or ""),
            email=str(guest.get("email") or ""),
            phone=str(guest.get("phone") or ""),
        ),
        quick_buy=quick_buy,
        idempotency_key=(request.headers.get("Idempotency-Key") or None),
    )
    result = place_order(req)

    resp = ok("order created", result.as_api(), status=200 if result.replayed else 201)
    resp.headers["X-Order-Id"] = str(result.order.id)
    return resp
