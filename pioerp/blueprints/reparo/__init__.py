from flask import Blueprint

reparo_bp = Blueprint("reparo", __name__, url_prefix="/api/reparo")

from . import routes  # noqa: E402,F401
