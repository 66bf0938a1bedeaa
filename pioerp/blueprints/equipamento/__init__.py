from flask import Blueprint

equipamento_bp = Blueprint("equipamento", __name__, url_prefix="/api/equipamento")

from . import routes  # noqa: E402,F401
