# storefront/cli.py
import click
from werkzeug.security import generate_password_hash
from .extensions import db
from .model import User
from .services.catalog_import import import_catalog, read_catalog
from .services.coupon_service import create_coupon as _create_coupon

@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")

@click.command("create-coupon")
@click.option("--code", required=True)
@click.option("--type", "discount_type", type=click.Choice(["percentage", "fixed"]), default="percentage")
@click.option("--value", "discount_value", required=True)
@click.option("--minimum", "minimum_order_amount", default="0")
@click.option("--maximum", "maximum_discount_amount", default=None)
@click.option("--usage-limit", "usage_limit", type=int, default=None)
@click.option("--valid-until", "valid_until", default=None, help="ISO-8601 timestamp")
def create_coupon(**opts):
    try:
        c = _create_coupon(opts)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Coupon created: {c.code} ({c.discount_type} {c.discount_value})")

@click.command("import-catalog")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_catalog_command(path):
    try:
        df = read_catalog(path)
    except ValueError as e:
        raise click.ClickException(str(e))
    report = import_catalog(df)
    click.echo(f"{report.products_created} products and {report.variants_created} variants imported from {path}")
    for line in report.errors:
        click.echo(f"  skipped {line}", err=True)

def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(create_coupon)
    app.cli.add_command(import_catalog_command)
