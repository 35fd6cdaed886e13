# storefront/model/product.py
from __future__ import annotations
from dataclasses import dataclass
from sqlalchemy.sql import func
from ..extensions import db

MAX_FIELD_KEY = 64
MAX_FIELD_VALUE = 500


@dataclass(frozen=True)
class CustomField:
    """One title/value detail shown on a variant (e.g. "Servings" -> "30")."""
    key: str
    value: str

    def as_dict(self):
        return {"key": self.key, "value": self.value}


def validate_custom_fields(raw) -> list[CustomField]:
    """
    Accepts a list of {"key", "value"} dicts (or CustomField / (key, value) pairs)
    and returns typed fields. Raises ValueError on anything malformed.
    """
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValueError("custom_fields must be a list")

    fields: list[CustomField] = []
    seen = set()
    for entry in raw:
        if isinstance(entry, CustomField):
            key, value = entry.key, entry.value
        elif isinstance(entry, dict):
            key, value = entry.get("key"), entry.get("value")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            key, value = entry
        else:
            raise ValueError("each custom field needs a key and a value")

        if not isinstance(key, str) or not key.strip():
            raise ValueError("custom field key must be a non-empty string")
        if value is None:
            value = ""
        if not isinstance(value, (str, int, float)):
            raise ValueError(f"custom field '{key}' value must be text")
        key, value = key.strip(), str(value).strip()
        if len(key) > MAX_FIELD_KEY:
            raise ValueError(f"custom field key must be ≤ {MAX_FIELD_KEY} chars")
        if len(value) > MAX_FIELD_VALUE:
            raise ValueError(f"custom field '{key}' value must be ≤ {MAX_FIELD_VALUE} chars")
        if key.lower() in seen:
            raise ValueError(f"duplicate custom field '{key}'")
        seen.add(key.lower())
        fields.append(CustomField(key, value))
    return fields


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), unique=True, index=True)
    description = db.Column(db.Text)
    category = db.Column(db.String(120), index=True)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True, index=True)
    image_url = db.Column(db.String(1024))

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    variants = db.relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductVariant.id.asc()",
    )

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "category": self.category,
            "price": float(self.price or 0),
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "image_url": self.image_url,
            "variants": [v.as_api() for v in self.variants],
        }


class ProductVariant(db.Model):
    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    variant_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(64), nullable=False, default="")
    flavor = db.Column(db.String(64))
    sku = db.Column(db.String(64), unique=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)          # selling price
    original_price = db.Column(db.Numeric(12, 2), nullable=True)  # strikethrough only, never charged
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True)

    # [{"key": ..., "value": ...}], always written through set_custom_fields
    product_details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    product = db.relationship("Product", back_populates="variants")

    @property
    def custom_fields(self) -> list[CustomField]:
        return [CustomField(d["key"], d["value"]) for d in (self.product_details or [])]

    def set_custom_fields(self, raw) -> list[CustomField]:
        fields = validate_custom_fields(raw)
        self.product_details = [f.as_dict() for f in fields]
        return fields

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_name": self.variant_name,
            "size": self.size,
            "flavor": self.flavor,
            "sku": self.sku,
            "price": float(self.price or 0),
            "original_price": float(self.original_price) if self.original_price is not None else None,
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "custom_fields": [f.as_dict() for f in self.custom_fields],
        }
