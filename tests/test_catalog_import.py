import pandas as pd
import pytest

from storefront.model import Coupon, Product, ProductVariant, User
from storefront.model.product import CustomField, validate_custom_fields
from storefront.services.catalog_import import import_catalog, parse_custom_fields, read_catalog, slugify


def test_custom_fields_accept_dicts_pairs_and_objects():
    fields = validate_custom_fields([
        {"key": " Servings ", "value": 30},
        ("Protein", "24g"),
        CustomField("Origin", "India"),
    ])
    assert fields == [CustomField("Servings", "30"), CustomField("Protein", "24g"), CustomField("Origin", "India")]
    assert validate_custom_fields(None) == []


@pytest.mark.parametrize("raw", [
    "Servings=30",
    [{"key": "", "value": "x"}],
    [{"key": "a" * 65, "value": "x"}],
    [{"key": "Notes", "value": "x" * 501}],
    [("Size", "1kg"), ("size", "2kg")],
    [{"key": "Tags", "value": ["a", "b"]}],
    ["lonely"],
])
def test_custom_fields_rejects_malformed(raw):
    with pytest.raises(ValueError):
        validate_custom_fields(raw)


def test_variant_round_trips_custom_fields(app, catalog):
    v = catalog["choc"]
    v.set_custom_fields([{"key": "Servings", "value": "33"}])
    assert v.product_details == [{"key": "Servings", "value": "33"}]
    assert v.custom_fields == [CustomField("Servings", "33")]


def test_parse_custom_fields_cell():
    assert parse_custom_fields("Servings=30; Protein = 24g ;") == [("Servings", "30"), ("Protein", "24g")]
    assert parse_custom_fields(float("nan")) == []
    with pytest.raises(ValueError):
        parse_custom_fields("Servings")


def test_slugify():
    assert slugify("  Titan Whey (2kg) ") == "titan-whey-2kg"


def test_import_groups_variants_and_reports_bad_rows(app):
    df = pd.DataFrame([
        {"product_name": "Creatine", "product_price": 799, "variant_name": "250g", "size": "250g",
         "variant_price": 799, "original_price": 999, "sku": "CR-250", "custom_fields": "Servings=83"},
        {"product_name": "Creatine", "product_price": 799, "variant_name": "500g", "size": "500g",
         "variant_price": 1399, "original_price": None, "sku": "CR-500", "custom_fields": None},
        {"product_name": "", "product_price": 10, "variant_name": None, "size": None,
         "variant_price": None, "original_price": None, "sku": None, "custom_fields": None},
        {"product_name": "Oats", "product_price": "cheap", "variant_name": None, "size": None,
         "variant_price": None, "original_price": None, "sku": None, "custom_fields": None},
        {"product_name": "Gloves", "product_price": 499, "variant_name": None, "size": None,
         "variant_price": None, "original_price": None, "sku": None, "custom_fields": None},
    ])
    report = import_catalog(df)

    assert (report.products_created, report.variants_created) == (2, 2)
    assert [e.split(":")[0] for e in report.errors] == ["row 4", "row 5"]

    creatine = Product.query.filter_by(slug="creatine").one()
    assert [str(v.price) for v in creatine.variants] == ["799.00", "1399.00"]
    assert creatine.variants[0].custom_fields == [CustomField("Servings", "83")]
    assert ProductVariant.query.filter_by(sku="CR-500").one().original_price is None
    assert Product.query.filter_by(slug="gloves").one().variants == []


def test_read_catalog_normalises_headers(tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text(" Product_Name ,PRODUCT_PRICE\nBand,199\n")
    df = read_catalog(str(path))
    assert list(df.columns) == ["product_name", "product_price"]

    with pytest.raises(ValueError):
        read_catalog(str(tmp_path / "catalog.json"))


def test_cli_import_catalog(app, tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("product_name,product_price,variant_name,variant_price\nBand,199,Light,199\nBand,199,Heavy,249\n")
    result = app.test_cli_runner().invoke(args=["import-catalog", str(path)])
    assert result.exit_code == 0
    assert "1 products and 2 variants" in result.output
    assert Product.query.filter_by(slug="band").one().variants[1].price == 249


def test_cli_create_admin_and_coupon(app):
    runner = app.test_cli_runner()
    r = runner.invoke(args=["create-admin", "--email", "Boss@Example.com", "--password", "pw123456", "--name", "Boss"])
    assert r.exit_code == 0
    assert User.query.filter_by(email="boss@example.com").one().role == "admin"

    r = runner.invoke(args=["create-coupon", "--code", "diwali", "--type", "fixed", "--value", "200",
                            "--usage-limit", "100"])
    assert r.exit_code == 0
    assert Coupon.query.filter_by(code="DIWALI").one().usage_limit == 100

    r = runner.invoke(args=["create-coupon", "--code", "bad", "--value", "150"])
    assert r.exit_code != 0
    assert "≤ 100" in r.output
