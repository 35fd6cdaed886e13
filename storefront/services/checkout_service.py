# storefront/services/checkout_service.py
"""
Order totals and order placement.

    subtotal -> coupon discount -> shipping -> total -> order + items -> payment

The order row, its items and the coupon redemption are written in one
transaction. Payment is initiated after that commit; if it fails the order
stays pending/pending for reconciliation and the cart is left as it was.
"""
from __future__ import annotations
import hashlib
import json
import secrets
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import (
    AddressRequired,
    CouponInvalid,
    EmptyCart,
    GuestContactRequired,
    IdempotencyKeyConflict,
    IdempotencyKeyMismatch,
    OrderCreationFailed,
    PaymentInitiationFailed,
    PaymentMethodRequired,
)
from ..extensions import db
from ..model import Order, OrderItem
from ..model.address import REQUIRED_ADDRESS_FIELDS
from ..model.order import PAYMENT_METHODS
from ..utils.dates import utcnow
from ..utils.money import D, ZERO, Money, round_money
from . import cart_service
from .coupon_service import CouponEvaluation, evaluate_coupon, normalize_code, redeem_coupon
from .payment_service import Contact, PaymentHandoff, gateway_redirect_url, initiate_payment, success_url
from .pricing import CartLine, Catalog, PricedLine, load_catalog, price_lines
from .shipping import compute_shipping


def compute_total(subtotal, discount_amount, shipping_amount) -> Money:
    total = D(subtotal) - D(discount_amount) + D(shipping_amount)
    return max(ZERO, total)


@dataclass
class CheckoutQuote:
    lines: list[PricedLine]
    excluded: list[CartLine]
    subtotal: Money
    discount_amount: Money
    shipping_amount: Money
    total_amount: Money
    coupon: CouponEvaluation | None = None

    def rounded(self) -> dict[str, Money]:
        """Two-decimal amounts for storage/display; total is rebuilt from the rounded parts."""
        subtotal = round_money(self.subtotal)
        discount = round_money(self.discount_amount)
        shipping = round_money(self.shipping_amount)
        return {
            "subtotal": subtotal,
            "discount_amount": discount,
            "shipping_amount": shipping,
            "total_amount": compute_total(subtotal, discount, shipping),
        }

    def as_api(self):
        amounts = self.rounded()
        return {
            **{k: float(v) for k, v in amounts.items()},
            "items": [
                {
                    "product_id": p.line.product_id,
                    "variant_id": p.line.variant_id,
                    "name": p.name,
                    "quantity": p.line.quantity,
                    "unit_price": float(round_money(p.unit_price)),
                    "line_total": float(round_money(p.line_total)),
                }
                for p in self.lines
            ],
            "excluded": [
                {"product_id": ln.product_id, "variant_id": ln.variant_id, "quantity": ln.quantity}
                for ln in self.excluded
            ],
            "coupon": self.coupon.as_api() if self.coupon else None,
        }


def build_quote(
    lines: list[CartLine],
    coupon_code: str | None = None,
    *,
    now: datetime | None = None,
    catalog: Catalog | None = None,
    strict_coupon: bool = False,
) -> CheckoutQuote:
    """
    Price the lines and assemble the totals.

    An inapplicable coupon leaves the discount at zero, or raises CouponInvalid
    when strict_coupon is set (checkout never ignores a coupon silently).
    """
    catalog = load_catalog(lines) if catalog is None else catalog
    priced, excluded = price_lines(lines, catalog)
    for ln in excluded:
        current_app.logger.warning(
            "excluding unresolvable cart line product=%s variant=%s", ln.product_id, ln.variant_id)
    subtotal = sum((p.line_total for p in priced), ZERO)

    evaluation = None
    discount = ZERO
    code = normalize_code(coupon_code)
    if code:
        evaluation = evaluate_coupon(code, subtotal, now)
        if evaluation.valid:
            discount = evaluation.discount_amount
        elif strict_coupon:
            evaluation.raise_for_reason()

    shipping = compute_shipping(subtotal)
    return CheckoutQuote(
        lines=priced,
        excluded=excluded,
        subtotal=subtotal,
        discount_amount=discount,
        shipping_amount=shipping,
        total_amount=compute_total(subtotal, discount, shipping),
        coupon=evaluation,
    )


# ---- order placement ---------------------------------------------------------

@dataclass
class GuestContact:
    name: str = ""
    email: str = ""
    phone: str = ""

    def missing(self) -> list[str]:
        return [k for k in ("name", "email", "phone") if not (getattr(self, k) or "").strip()]


@dataclass
class CheckoutRequest:
    lines: list[CartLine]
    address: dict | None
    payment_method: str | None
    coupon_code: str | None = None
    user_id: int | None = None
    user_email: str | None = None
    guest: GuestContact | None = None
    quick_buy: bool = False
    idempotency_key: str | None = None
    now: datetime | None = field(default=None, repr=False)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    redirect_url: str
    replayed: bool = False

    def as_api(self):
        return {"order": self.order.as_api(), "redirect_url": self.redirect_url, "replayed": self.replayed}


def _gen_order_code():
    return "ORD-" + utcnow().strftime("%Y%m%d-%H%M%S%f")[:18] + "-" + secrets.token_hex(2).upper()


def validate_request(req: CheckoutRequest) -> None:
    """Input checks that run before any network/database write."""
    address = req.address or {}
    missing = [f for f in REQUIRED_ADDRESS_FIELDS if not str(address.get(f) or "").strip()]
    if missing:
        raise AddressRequired(missing=missing)
    method = req.payment_method if isinstance(req.payment_method, str) else ""
    if method.lower() not in PAYMENT_METHODS:
        raise PaymentMethodRequired()
    if req.is_guest:
        guest = req.guest or GuestContact()
        missing = guest.missing()
        if missing:
            raise GuestContactRequired(missing=missing)
    if not req.lines:
        raise EmptyCart()


def _contact_for(req: CheckoutRequest) -> Contact:
    address = req.address or {}
    guest = req.guest or GuestContact()
    return Contact(
        first_name=address.get("first_name") or guest.name or "Customer",
        email=req.user_email or guest.email,
        phone=address.get("phone") or guest.phone or "",
    )


def _existing_order(key: str | None) -> Order | None:
    if not key:
        return None
    return Order.query.filter_by(idempotency_key=key).first()


def _handoff(order: Order, req: CheckoutRequest) -> PaymentHandoff:
    try:
        return initiate_payment(order, _contact_for(req))
    except PaymentInitiationFailed as e:
        e.details.setdefault("order_id", order.id)
        current_app.logger.error("payment initiation failed for order %s: %s", order.id, e)
        raise


def _finish(order: Order, req: CheckoutRequest) -> CheckoutResult:
    handoff = _handoff(order, req)
    if req.user_id is not None and not req.quick_buy:
        try:
            cart_service.clear_cart(req.user_id)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("order %s placed but cart of user %s not cleared", order.id, req.user_id)
    return CheckoutResult(order, handoff.redirect_url)


def request_fingerprint(req: CheckoutRequest) -> str:
    """
    Digest of what a keyed checkout asked for. Cart checkouts leave the lines
    out: the cart is emptied by the first success, so a retry sends none.
    """
    address = req.address or {}
    body = {
        "payment_method": str(req.payment_method or "").lower(),
        "coupon_code": normalize_code(req.coupon_code),
        "address": {f: str(address.get(f) or "").strip() for f in REQUIRED_ADDRESS_FIELDS},
        "items": sorted([ln.product_id, ln.variant_id or 0, ln.quantity] for ln in req.lines) if req.quick_buy else None,
    }
    return hashlib.sha256(json.dumps(body, sort_keys=True).encode("utf-8")).hexdigest()


def _owned_by(order: Order, req: CheckoutRequest) -> bool:
    if req.user_id is not None:
        return order.user_id == req.user_id
    guest_email = ((req.guest or GuestContact()).email or "").strip().lower()
    return order.user_id is None and bool(guest_email) and (order.guest_email or "").lower() == guest_email


def _replay(order: Order, req: CheckoutRequest) -> CheckoutResult:
    if not _owned_by(order, req):
        current_app.logger.warning("idempotency key of order %s reused by another customer", order.id)
        raise IdempotencyKeyConflict()
    if order.request_fingerprint and order.request_fingerprint != request_fingerprint(req):
        raise IdempotencyKeyMismatch(order_id=order.id)

    current_app.logger.info("idempotent replay of order %s", order.id)
    if order.payment_method == "online" and order.payments:
        latest = order.payments[-1]
        if latest.status == "pending":
            return CheckoutResult(order, gateway_redirect_url(latest.payment_id), replayed=True)
        if latest.status == "completed":
            return CheckoutResult(order, success_url(order, latest.payment_id), replayed=True)
    # cod, or an online order whose payment never started / failed: hand off again, cart untouched
    handoff = _handoff(order, req)
    return CheckoutResult(order, handoff.redirect_url, replayed=True)


def _write_order(req: CheckoutRequest, quote: CheckoutQuote) -> Order:
    amounts = quote.rounded()
    guest = req.guest or GuestContact()
    order = Order(
        code=_gen_order_code(),
        status="pending",
        payment_status="pending",
        payment_method=req.payment_method.lower(),
        user_id=req.user_id,
        guest_name=guest.name if req.is_guest else None,
        guest_email=guest.email if req.is_guest else None,
        guest_phone=guest.phone if req.is_guest else None,
        shipping_address=dict(req.address),
        coupon_code=quote.coupon.coupon.code if quote.coupon and quote.coupon.valid else None,
        idempotency_key=req.idempotency_key,
        request_fingerprint=request_fingerprint(req) if req.idempotency_key else None,
        **amounts,
    )
    db.session.add(order)
    db.session.flush()

    for p in quote.lines:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=p.line.product_id,
            variant_id=p.line.variant_id,
            name=p.name,
            price=round_money(p.unit_price),
            quantity=p.line.quantity,
            line_total=round_money(p.line_total),
        ))

    if order.coupon_code:
        redeem_coupon(
            quote.coupon.coupon,
            order_id=order.id,
            discount_amount=amounts["discount_amount"],
            user_id=req.user_id,
        )
    db.session.commit()
    return order


def place_order(req: CheckoutRequest) -> CheckoutResult:
    existing = _existing_order(req.idempotency_key)
    if existing is not None:
        return _replay(existing, req)

    validate_request(req)

    quote = build_quote(req.lines, req.coupon_code, now=req.now, strict_coupon=True)
    if not quote.lines:
        raise EmptyCart()

    try:
        order = _write_order(req, quote)
    except CouponInvalid:
        db.session.rollback()
        raise
    except IntegrityError:
        db.session.rollback()
        existing = _existing_order(req.idempotency_key)
        if existing is not None:
            return _replay(existing, req)
        current_app.logger.exception("order insert failed")
        raise OrderCreationFailed()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("order insert failed")
        raise OrderCreationFailed()

    current_app.logger.info(
        "order %s created: subtotal=%s discount=%s shipping=%s total=%s method=%s",
        order.code, order.subtotal, order.discount_amount, order.shipping_amount,
        order.total_amount, order.payment_method)
    return _finish(order, req)
