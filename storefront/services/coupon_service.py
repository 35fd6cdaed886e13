# storefront/services/coupon_service.py
"""
Coupon evaluation and redemption.

Evaluation is pure: it reads a coupon and decides whether it applies to a
subtotal at a point in time, and how much it takes off. Recording usage is a
separate step, run by checkout only once the order exists.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from flask import current_app
from sqlalchemy import func, update, or_

from ..errors import CouponInvalid
from ..extensions import db
from ..model import Coupon, CouponUsage
from ..model.coupon import DISCOUNT_TYPES, PERCENTAGE
from ..utils.dates import utcnow, to_naive_utc, parse_iso8601
from ..utils.money import D, ZERO, Money, parse_money

# rejection reasons, in the order they are checked
NOT_FOUND = "NotFound"
INACTIVE = "Inactive"
NOT_YET_VALID = "NotYetValid"
EXPIRED = "Expired"
BELOW_MINIMUM = "BelowMinimum"
USAGE_LIMIT_REACHED = "UsageLimitReached"

MESSAGES = {
    NOT_FOUND: "Coupon code not found",
    INACTIVE: "This coupon is no longer active",
    NOT_YET_VALID: "This coupon is not yet active",
    EXPIRED: "This coupon has expired",
    BELOW_MINIMUM: "Minimum order amount not met",
    USAGE_LIMIT_REACHED: "This coupon has reached its usage limit",
}


@dataclass(frozen=True)
class CouponEvaluation:
    valid: bool
    discount_amount: Money = ZERO
    reason: str | None = None
    coupon: Coupon | None = None

    @property
    def message(self) -> str:
        if self.valid:
            return "Coupon applied"
        msg = MESSAGES.get(self.reason, "Coupon cannot be applied")
        if self.reason == BELOW_MINIMUM and self.coupon is not None:
            msg = f"Minimum order amount of ₹{D(self.coupon.minimum_order_amount):.2f} required"
        return msg

    def raise_for_reason(self):
        if not self.valid:
            raise CouponInvalid(self.reason, self.message)

    def as_api(self):
        data = {
            "valid": self.valid,
            "discount_amount": float(self.discount_amount),
            "reason": self.reason,
            "message": self.message,
        }
        if self.coupon is not None:
            data["code"] = self.coupon.code
        return data


def normalize_code(code: str | None) -> str:
    return str(code or "").strip().upper()


def find_coupon(code: str) -> Coupon | None:
    code = normalize_code(code)
    if not code:
        return None
    return Coupon.query.filter(func.upper(Coupon.code) == code).first()


def evaluate(coupon: Coupon | None, subtotal, now: datetime) -> CouponEvaluation:
    """Decide applicability of an already-loaded coupon. No writes."""
    if coupon is None:
        return CouponEvaluation(False, reason=NOT_FOUND)
    subtotal = D(subtotal)
    now = to_naive_utc(now)

    if not coupon.is_active:
        return CouponEvaluation(False, reason=INACTIVE, coupon=coupon)
    if coupon.valid_from is not None and now < to_naive_utc(coupon.valid_from):
        return CouponEvaluation(False, reason=NOT_YET_VALID, coupon=coupon)
    if coupon.valid_until is not None and now > to_naive_utc(coupon.valid_until):
        return CouponEvaluation(False, reason=EXPIRED, coupon=coupon)
    if subtotal < D(coupon.minimum_order_amount):
        return CouponEvaluation(False, reason=BELOW_MINIMUM, coupon=coupon)
    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        return CouponEvaluation(False, reason=USAGE_LIMIT_REACHED, coupon=coupon)

    value = D(coupon.discount_value)
    if coupon.discount_type == PERCENTAGE:
        discount = subtotal * (value / Decimal(100))
    else:
        discount = value

    if coupon.maximum_discount_amount is not None:
        discount = min(discount, D(coupon.maximum_discount_amount))
    # never more than the goods themselves
    discount = max(ZERO, min(discount, subtotal))
    return CouponEvaluation(True, discount_amount=discount, coupon=coupon)


def evaluate_coupon(
    code: str,
    subtotal,
    now: datetime | None = None,
    lookup: Callable[[str], Coupon | None] = find_coupon,
) -> CouponEvaluation:
    now = utcnow() if now is None else now
    result = evaluate(lookup(normalize_code(code)), subtotal, now)
    if not result.valid:
        current_app.logger.info("coupon %r rejected: %s", normalize_code(code), result.reason)
    return result


def redeem_coupon(coupon: Coupon, *, order_id: int, discount_amount, user_id: int | None = None) -> CouponUsage:
    """
    Consume one use of the coupon inside the caller's transaction.

    The increment is conditional on the limit in the same statement, so two
    concurrent redemptions of the last use cannot both succeed.
    """
    stmt = (
        update(Coupon)
        .where(Coupon.id == coupon.id)
        .where(or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit))
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise CouponInvalid(USAGE_LIMIT_REACHED, MESSAGES[USAGE_LIMIT_REACHED])

    usage = CouponUsage(
        coupon_id=coupon.id,
        order_id=order_id,
        user_id=user_id,
        discount_amount=D(discount_amount),
    )
    db.session.add(usage)
    db.session.flush()
    db.session.refresh(coupon)
    return usage


# ---- admin writes -----------------------------------------------------------

def _optional_int(value, field: str) -> int | None:
    if value in (None, ""):
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if value < 1:
        raise ValueError(f"{field} must be >= 1")
    return value


def create_coupon(data: dict) -> Coupon:
    """Validate an admin payload and insert a coupon. Raises ValueError on bad input."""
    code = normalize_code(data.get("code"))
    dtype = (data.get("discount_type") or PERCENTAGE).lower().strip()
    if not code:
        raise ValueError("code is required")
    if dtype not in DISCOUNT_TYPES:
        raise ValueError("discount_type must be 'percentage' or 'fixed'")

    value = parse_money(data.get("discount_value"), "discount_value")
    if dtype == PERCENTAGE and value > 100:
        raise ValueError("percentage discount must be ≤ 100")
    minimum = parse_money(data.get("minimum_order_amount"), "minimum_order_amount")
    maximum = data.get("maximum_discount_amount")
    maximum = None if maximum in (None, "") else parse_money(maximum, "maximum_discount_amount")
    usage_limit = _optional_int(data.get("usage_limit"), "usage_limit")

    valid_from = parse_iso8601(data.get("valid_from"))
    valid_until = parse_iso8601(data.get("valid_until"))
    if data.get("valid_from") and not valid_from:
        raise ValueError("Invalid datetime format for valid_from")
    if data.get("valid_until") and not valid_until:
        raise ValueError("Invalid datetime format for valid_until")
    valid_from = valid_from or utcnow()
    if valid_until and valid_until < valid_from:
        raise ValueError("valid_until must be after valid_from")

    if find_coupon(code):
        raise ValueError("Coupon code already exists")

    c = Coupon(
        code=code,
        description=(data.get("description") or None),
        discount_type=dtype,
        discount_value=value,
        minimum_order_amount=minimum,
        maximum_discount_amount=maximum,
        usage_limit=usage_limit,
        used_count=0,
        is_active=bool(data.get("is_active", True)),
        valid_from=valid_from,
        valid_until=valid_until,
    )
    db.session.add(c)
    db.session.commit()
    current_app.logger.info("coupon %s created (%s %s)", c.code, c.discount_type, c.discount_value)
    return c
