# storefront/address/routes.py
from flask import request
from . import bp
from ..extensions import db
from ..model import Address, User
from ..model.address import REQUIRED_ADDRESS_FIELDS
from ..utils.api import ok, err
from ..utils.decorators import login_required

_OPTIONAL = ("address_line_2", "country", "phone")


@bp.get("")
@login_required
def list_addresses(user: User):
    rows = (Address.query.filter_by(user_id=user.id)
            .order_by(Address.is_default.desc(), Address.id.asc())
            .all())
    return ok("addresses", {"items": [a.as_api() for a in rows]})


@bp.post("")
@login_required
def create_address(user: User):
    data = request.get_json(silent=True) or {}
    missing = [f for f in REQUIRED_ADDRESS_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        return err("missing address fields", 422, {"missing": missing})

    fields = {f: str(data[f]).strip() for f in REQUIRED_ADDRESS_FIELDS}
    fields.update({f: (str(data[f]).strip() or None) for f in _OPTIONAL if data.get(f) is not None})
    is_default = bool(data.get("is_default", False))
    if is_default:
        Address.query.filter_by(user_id=user.id).update({"is_default": False})

    addr = Address(user_id=user.id, is_default=is_default, **fields)
    if not addr.country:
        addr.country = "India"
    db.session.add(addr)
    db.session.commit()
    return ok("Address added successfully", {"address": addr.as_api()}, status=201)
