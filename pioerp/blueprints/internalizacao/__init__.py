from flask import Blueprint

internalizacao_bp = Blueprint("internalizacao", __name__, url_prefix="/api/internalizacao")

from . import routes  # noqa: E402,F401
