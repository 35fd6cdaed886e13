# storefront/order/routes.py
from flask import request
from . import bp
from ..extensions import db
from ..model import Order, User
from ..model.order import ORDER_STATUSES, PAYMENT_STATUSES
from ..utils.api import ok, err
from ..utils.decorators import login_required, role_required


@bp.get("")
@login_required
def list_orders(user: User):
    """
    Query params:
      - page, per_page
      - status=pending|processing|shipped|delivered|cancelled
      - payment_status=pending|completed|failed|refunded
    Admins see every order; customers only their own.
    """
    q = Order.query
    if user.role != "admin":
        q = q.filter(Order.user_id == user.id)

    status = request.args.get("status")
    payment_status = request.args.get("payment_status")
    if status: q = q.filter(Order.status == status)
    if payment_status: q = q.filter(Order.payment_status == payment_status)

    page = max(request.args.get("page", 1, type=int), 1)
    per = min(max(request.args.get("per_page", 20, type=int), 1), 100)

    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    paged = q.paginate(page=page, per_page=per, error_out=False)

    return ok("orders", {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api() for o in paged.items],
    })


@bp.get("/<int:order_id>")
@login_required
def get_order(user: User, order_id: int):
    o = db.session.get(Order, order_id)
    if not o or (user.role != "admin" and o.user_id != user.id):
        return err("order not found", 404)
    return ok("order", o.as_api())


@bp.patch("/<int:order_id>/status")
@role_required("admin")
def update_status(order_id: int):
    """
    Body: { "status"?: str, "payment_status"?: str }
    Amounts are never touched. Cancelling does not give coupon uses back.
    """
    o = db.session.get(Order, order_id)
    if not o:
        return err("order not found", 404)

    data = request.get_json(silent=True) or {}
    status = data.get("status")
    payment_status = data.get("payment_status")
    if status is None and payment_status is None:
        return err("status or payment_status is required", 422)
    if status is not None and status not in ORDER_STATUSES:
        return err(f"status must be one of {', '.join(ORDER_STATUSES)}", 422)
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        return err(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}", 422)

    if status is not None:
        o.status = status
    if payment_status is not None:
        o.payment_status = payment_status
    db.session.commit()
    return ok("order updated", o.as_api())
