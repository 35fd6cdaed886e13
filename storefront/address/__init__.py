from flask import Blueprint

bp = Blueprint("address", __name__, url_prefix="/addresses")

from . import routes  # noqa: E402,F401
