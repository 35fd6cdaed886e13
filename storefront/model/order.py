from ..extensions import db
from ..utils.dates import utcnow

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")
PAYMENT_METHODS = ("online", "cod")

class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, index=True)  # e.g., "ORD-20251022-101500123"
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_method = db.Column(db.String(16), nullable=False, default="online")

    # Customer: either a user reference or guest contact details inline
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    guest_name = db.Column(db.String(120))
    guest_email = db.Column(db.String(120))
    guest_phone = db.Column(db.String(50))
    shipping_address = db.Column(db.JSON)  # snapshot, not a FK to addresses

    # Money snapshot, never recomputed after insert
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    coupon_code = db.Column(db.String(64))

    idempotency_key = db.Column(db.String(128), unique=True, nullable=True)
    request_fingerprint = db.Column(db.String(64), nullable=True)  # sha256 of the keyed request

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="joined"
    )
    payments = db.relationship(
        "OrderPayment",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderPayment.id.asc()",
    )

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "customer": {
                "user_id": self.user_id,
                "name": self.guest_name,
                "email": self.guest_email,
                "phone": self.guest_phone,
            },
            "shipping_address": self.shipping_address,
            "money": {
                "subtotal": float(self.subtotal or 0),
                "discount_amount": float(self.discount_amount or 0),
                "shipping_amount": float(self.shipping_amount or 0),
                "total_amount": float(self.total_amount or 0),
            },
            "coupon_code": self.coupon_code,
            "items": [i.as_api() for i in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, index=True)
    variant_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.String(255))

    price = db.Column(db.Numeric(12, 2), nullable=False)  # unit price at purchase time
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2))

    def as_api(self):
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "price": float(self.price or 0),
            "quantity": self.quantity,
            "line_total": float(self.line_total or 0),
        }

class OrderPayment(db.Model):
    __tablename__ = "order_payments"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    payment_id = db.Column(db.String(80), unique=True, nullable=False, index=True)  # gateway txn id
    payment_method = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    payment_data = db.Column(db.JSON)
    gateway_response = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
