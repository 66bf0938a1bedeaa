from flask import Blueprint

movimentacao_bp = Blueprint("movimentacao", __name__, url_prefix="/api/movimentacao")

from . import routes  # noqa: E402,F401
