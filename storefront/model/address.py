# storefront/model/address.py
from sqlalchemy.sql import func
from ..extensions import db

REQUIRED_ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "address_line_1",
    "city",
    "state",
    "postal_code",
)

class Address(db.Model):
    __tablename__ = "addresses"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    address_line_1 = db.Column(db.String(255), nullable=False)
    address_line_2 = db.Column(db.String(255))
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(120), nullable=False)
    postal_code = db.Column(db.String(20), nullable=False)
    country = db.Column(db.String(80), nullable=False, default="India")
    phone = db.Column(db.String(50))
    is_default = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, server_default=func.now())

    def snapshot(self) -> dict:
        """Plain dict copied onto an order; later edits to the address don't reach it."""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address_line_1": self.address_line_1,
            "address_line_2": self.address_line_2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }

    def as_api(self):
        return {"id": self.id, "is_default": bool(self.is_default), **self.snapshot()}
