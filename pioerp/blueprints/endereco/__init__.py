from flask import Blueprint

endereco_bp = Blueprint("endereco", __name__, url_prefix="/api")

from . import routes  # noqa: E402,F401
