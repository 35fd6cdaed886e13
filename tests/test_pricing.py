from decimal import Decimal

import pytest

from storefront.model import Product, ProductVariant
from storefront.services.pricing import (
    CartLine,
    Catalog,
    compute_subtotal,
    load_catalog,
    price_lines,
    resolve_unit_price,
)


@pytest.fixture
def mem_catalog():
    whey = Product(id=1, name="Whey", price=Decimal("2000.00"))
    bcaa = Product(id=2, name="BCAA", price=Decimal("0.10"))
    choc = ProductVariant(id=10, product_id=1, variant_name="Chocolate", price=Decimal("1799.00"),
                          original_price=Decimal("2499.00"))
    other = ProductVariant(id=20, product_id=2, variant_name="Lemon", price=Decimal("5.00"))
    return Catalog(products={1: whey, 2: bcaa}, variants={10: choc, 20: other})


def test_variant_price_overrides_product_price(mem_catalog):
    assert resolve_unit_price(CartLine(1, 1, variant_id=10), mem_catalog) == Decimal("1799.00")
    assert resolve_unit_price(CartLine(1, 1), mem_catalog) == Decimal("2000.00")


def test_unresolvable_lines_are_none_not_zero(mem_catalog):
    assert resolve_unit_price(CartLine(99, 1), mem_catalog) is None
    assert resolve_unit_price(CartLine(1, 1, variant_id=99), mem_catalog) is None
    # variant exists but belongs to another product
    assert resolve_unit_price(CartLine(1, 1, variant_id=20), mem_catalog) is None


def test_subtotal_sums_price_times_quantity(mem_catalog):
    lines = [CartLine(1, 2, variant_id=10), CartLine(1, 1)]
    assert compute_subtotal(lines, mem_catalog) == Decimal("5598.00")


def test_subtotal_excludes_invalid_lines(mem_catalog):
    lines = [CartLine(1, 1, variant_id=10), CartLine(99, 3), CartLine(1, 1, variant_id=20)]
    priced, excluded = price_lines(lines, mem_catalog)
    assert [p.line for p in priced] == [CartLine(1, 1, variant_id=10)]
    assert len(excluded) == 2
    assert compute_subtotal(lines, mem_catalog) == Decimal("1799.00")


def test_subtotal_is_decimal_exact(mem_catalog):
    lines = [CartLine(2, 3)]
    assert compute_subtotal(lines, mem_catalog) == Decimal("0.30")
    assert isinstance(compute_subtotal(lines, mem_catalog), Decimal)


def test_empty_cart_subtotal_is_zero(mem_catalog):
    assert compute_subtotal([], mem_catalog) == Decimal("0")


def test_subtotal_monotonic_in_quantity(mem_catalog):
    totals = [compute_subtotal([CartLine(1, q, variant_id=10), CartLine(2, 1)], mem_catalog) for q in range(1, 6)]
    assert totals == sorted(totals)
    assert len(set(totals)) == len(totals)


@pytest.mark.parametrize("qty", [0, -1])
def test_cart_line_rejects_non_positive_quantity(qty):
    with pytest.raises(ValueError):
        CartLine(1, qty)


def test_cart_line_from_payload():
    assert CartLine.from_payload({"product_id": "3", "qty": "2", "variant_id": ""}) == CartLine(3, 2)
    assert CartLine.from_payload({"product_id": 3, "quantity": 1, "variant_id": 7}) == CartLine(3, 1, 7)
    with pytest.raises(ValueError):
        CartLine.from_payload({"product_id": "abc"})
    with pytest.raises(ValueError):
        CartLine.from_payload({"product_id": 3, "quantity": 0})


def test_load_catalog_reads_products_and_variants(catalog):
    lines = [CartLine(catalog["whey"].id, 1, catalog["choc"].id), CartLine(catalog["shaker"].id, 2)]
    loaded = load_catalog(lines)
    assert set(loaded.products) == {catalog["whey"].id, catalog["shaker"].id}
    assert set(loaded.variants) == {catalog["choc"].id}
    assert compute_subtotal(lines, loaded) == Decimal("2099.00")
