from flask import Blueprint

catalogo_bp = Blueprint("catalogo", __name__, url_prefix="/api/catalogo")

from . import routes  # noqa: E402,F401
