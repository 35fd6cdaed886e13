# storefront/services/catalog_import.py
"""
Bulk product/variant import from a spreadsheet.

One row per variant (or per product when it has no variants). Columns:
    product_name, slug, description, category, product_price, product_stock,
    variant_name, size, flavor, sku, variant_price, original_price,
    variant_stock, custom_fields ("Servings=30;Protein=24g")
Products are matched by slug (or name) so re-running an import adds variants
to existing products instead of duplicating them.
"""
from __future__ import annotations
import os
import re
from dataclasses import dataclass, field

import pandas as pd
from flask import current_app

from ..extensions import db
from ..model import Product, ProductVariant
from ..model.product import validate_custom_fields
from ..utils.money import parse_money


@dataclass
class ImportReport:
    products_created: int = 0
    variants_created: int = 0
    errors: list[str] = field(default_factory=list)


def slugify(text):
    text = str(text).strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def read_catalog(path: str) -> pd.DataFrame:
    ext = os.path.splitext(path)[1].lower()
    if ext in (".xlsx", ".xls"):
        df = pd.read_excel(path)
    elif ext == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError(f"unsupported catalog file type: {ext}")
    df.columns = df.columns.str.strip().str.lower()
    return df


def parse_custom_fields(cell) -> list[tuple[str, str]]:
    """'Servings=30;Protein=24g' -> [("Servings", "30"), ("Protein", "24g")]"""
    if _blank(cell):
        return []
    pairs = []
    for chunk in str(cell).split(";"):
        if not chunk.strip():
            continue
        if "=" not in chunk:
            raise ValueError(f"custom field '{chunk.strip()}' must look like key=value")
        key, value = chunk.split("=", 1)
        pairs.append((key.strip(), value.strip()))
    return pairs


def _blank(v) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False


def _cell(row, name, default=None):
    v = row.get(name, default)
    return default if _blank(v) else v


def _product_fields(row) -> dict:
    name = str(_cell(row, "product_name", "")).strip()
    if not name:
        raise ValueError("product_name is required")
    return {
        "name": name,
        "slug": str(_cell(row, "slug") or slugify(name)),
        "description": _cell(row, "description"),
        "category": _cell(row, "category"),
        "price": parse_money(_cell(row, "product_price", 0), "product_price"),
        "stock_quantity": int(_cell(row, "product_stock", 0)),
    }


def _variant_fields(row, product_price) -> dict:
    original = _cell(row, "original_price")
    sku = _cell(row, "sku")
    return {
        "variant_name": str(_cell(row, "variant_name")).strip(),
        "size": str(_cell(row, "size", "")),
        "flavor": _cell(row, "flavor"),
        "sku": None if sku is None else str(sku),
        "price": parse_money(_cell(row, "variant_price", product_price), "variant_price"),
        "original_price": None if original is None else parse_money(original, "original_price"),
        "stock_quantity": int(_cell(row, "variant_stock", 0)),
        "custom_fields": validate_custom_fields(parse_custom_fields(_cell(row, "custom_fields"))),
    }


def _get_or_create_product(fields: dict, report: ImportReport) -> Product:
    product = Product.query.filter_by(slug=fields["slug"]).first()
    if product:
        return product
    product = Product(is_active=True, **fields)
    db.session.add(product)
    db.session.flush()
    report.products_created += 1
    return product


def import_catalog(df: pd.DataFrame) -> ImportReport:
    """Insert every valid row; bad rows are reported and skipped."""
    report = ImportReport()
    for idx, row in enumerate(df.to_dict(orient="records"), start=2):  # row 1 is the header
        try:
            product_fields = _product_fields(row)
            variant_fields = None
            if _cell(row, "variant_name") is not None:
                variant_fields = _variant_fields(row, product_fields["price"])
        except (ValueError, TypeError) as e:
            report.errors.append(f"row {idx}: {e}")
            continue

        product = _get_or_create_product(product_fields, report)
        if variant_fields is not None:
            custom_fields = variant_fields.pop("custom_fields")
            variant = ProductVariant(product_id=product.id, is_active=True, **variant_fields)
            variant.set_custom_fields(custom_fields)
            db.session.add(variant)
            report.variants_created += 1

    db.session.commit()
    current_app.logger.info(
        "catalog import: %s products, %s variants, %s errors",
        report.products_created, report.variants_created, len(report.errors))
    return report
