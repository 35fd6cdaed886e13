# --- storefront/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)

class Coupon(db.Model):
    __tablename__ = "coupons"
    __table_args__ = (
        db.CheckConstraint("used_count >= 0", name="ck_coupon_used_count"),
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored upper-case
    description = db.Column(db.String(255))

    # "percentage" or "fixed"
    discount_type = db.Column(db.String(16), nullable=False, default=PERCENTAGE)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    minimum_order_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    maximum_discount_amount = db.Column(db.Numeric(12, 2), nullable=True)
    usage_limit = db.Column(db.Integer, nullable=True)    # global cap, None = unlimited
    used_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    valid_from = db.Column(db.DateTime, nullable=False, server_default=func.now())
    valid_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    usages = db.relationship("CouponUsage", back_populates="coupon", lazy="selectin")

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value or 0),
            "minimum_order_amount": float(self.minimum_order_amount or 0),
            "maximum_discount_amount": float(self.maximum_discount_amount) if self.maximum_discount_amount is not None else None,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count or 0,
            "is_active": self.is_active,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
        }

class CouponUsage(db.Model):
    """Audit row written when an order actually consumes a coupon."""
    __tablename__ = "coupon_usage"

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id", ondelete="CASCADE"), index=True, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), index=True, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=True)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime, server_default=func.now())

    coupon = db.relationship("Coupon", back_populates="usages")
