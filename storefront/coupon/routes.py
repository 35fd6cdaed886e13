# storefront/coupon/routes.py
from __future__ import annotations
from flask import request

from . import bp
from ..model import Coupon
from ..services import cart_service
from ..services.coupon_service import create_coupon as _create_coupon, evaluate_coupon
from ..services.pricing import CartLine, compute_subtotal, load_catalog
from ..utils.api import ok, err
from ..utils.decorators import current_user, role_required
from ..utils.money import parse_money


@bp.post("/validate")
def validate_coupon():
    """
    Body: { "code": "SAVE10", "subtotal": number? , "items": [...]? }
    Without an explicit subtotal, the signed-in shopper's cart (or the given
    quick-buy items) is priced. Never records usage.
    """
    data = request.get_json(silent=True) or {}
    code = str(data.get("code") or "").strip()
    if not code:
        return err("Please enter a coupon code", 422)

    if data.get("subtotal") is not None:
        try:
            subtotal = parse_money(data.get("subtotal"), "subtotal")
        except ValueError as e:
            return err(str(e), 422)
    else:
        if data.get("items"):
            try:
                lines = [CartLine.from_payload(x) for x in data["items"]]
            except (ValueError, AttributeError) as e:
                return err(str(e), 422)
        else:
            user = current_user(optional=True)
            lines = cart_service.cart_lines(user.id) if user else []
        subtotal = compute_subtotal(lines, load_catalog(lines))

    result = evaluate_coupon(code, subtotal)
    if not result.valid:
        return err(result.message, 422, {"code": f"CouponInvalid:{result.reason}", "coupon": result.as_api()})
    return ok("Coupon Applied!", {"coupon": result.as_api()})


@bp.post("")
@role_required("admin")
def create_coupon():
    data = request.get_json(silent=True) or {}
    try:
        c = _create_coupon(data)
    except ValueError as e:
        return err(str(e), 400)
    return ok("Coupon created", {"coupon": c.as_api()}, status=201)


@bp.get("")
@role_required("admin")
def list_coupons():
    q = Coupon.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Coupon.is_active == (active.lower() == "true"))
    items = q.order_by(Coupon.id.desc()).all()
    return ok("ok", {"items": [c.as_api() for c in items]})
