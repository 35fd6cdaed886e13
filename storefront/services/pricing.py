# storefront/services/pricing.py
"""
Price resolution and subtotal for cart lines.

A line is priced from its variant when it names one, otherwise from the
product. Lines that cannot be resolved are excluded from totals, never priced
at zero. All arithmetic stays in Decimal; rounding happens only when amounts
are persisted or displayed.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..model import Product, ProductVariant
from ..utils.money import D, ZERO, Money


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    variant_id: int | None = None

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("quantity must be an integer")
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")

    @classmethod
    def from_payload(cls, data: dict) -> "CartLine":
        quantity = data.get("quantity", data.get("qty"))
        try:
            product_id = int(data.get("product_id"))
            quantity = 1 if quantity is None else int(quantity)
        except (TypeError, ValueError):
            raise ValueError("product_id and quantity must be integers")
        variant_id = data.get("variant_id")
        if variant_id in ("", None):
            variant_id = None
        else:
            try:
                variant_id = int(variant_id)
            except (TypeError, ValueError):
                raise ValueError("variant_id must be an integer")
        return cls(product_id=product_id, quantity=quantity, variant_id=variant_id)


@dataclass
class Catalog:
    products: dict[int, Product] = field(default_factory=dict)
    variants: dict[int, ProductVariant] = field(default_factory=dict)


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    unit_price: Money
    name: str

    @property
    def line_total(self) -> Money:
        return self.unit_price * Decimal(self.line.quantity)


def load_catalog(lines: Iterable[CartLine]) -> Catalog:
    lines = list(lines)
    pids = {ln.product_id for ln in lines}
    vids = {ln.variant_id for ln in lines if ln.variant_id is not None}
    catalog = Catalog()
    if pids:
        rows = db.session.query(Product).filter(Product.id.in_(pids)).all()
        catalog.products = {p.id: p for p in rows}
    if vids:
        rows = db.session.query(ProductVariant).filter(ProductVariant.id.in_(vids)).all()
        catalog.variants = {v.id: v for v in rows}
    return catalog


def resolve_unit_price(line: CartLine, catalog: Catalog) -> Money | None:
    """Variant price overrides product price; None when the line can't be resolved."""
    product = catalog.products.get(line.product_id)
    if product is None:
        return None
    if line.variant_id is not None:
        variant = catalog.variants.get(line.variant_id)
        if variant is None or variant.product_id != product.id or variant.price is None:
            return None
        return D(variant.price)
    if product.price is None:
        return None
    return D(product.price)


def _line_name(line: CartLine, catalog: Catalog) -> str:
    product = catalog.products[line.product_id]
    if line.variant_id is not None:
        return f"{product.name} - {catalog.variants[line.variant_id].variant_name}"
    return product.name


def price_lines(lines: Iterable[CartLine], catalog: Catalog) -> tuple[list[PricedLine], list[CartLine]]:
    """Returns (priced, excluded)."""
    priced, excluded = [], []
    for ln in lines:
        price = resolve_unit_price(ln, catalog)
        if price is None:
            excluded.append(ln)
            continue
        priced.append(PricedLine(line=ln, unit_price=price, name=_line_name(ln, catalog)))
    return priced, excluded


def compute_subtotal(lines: Iterable[CartLine], catalog: Catalog) -> Money:
    priced, _ = price_lines(lines, catalog)
    return sum((p.line_total for p in priced), ZERO)
