from flask import current_app, request

from pioerp.services import consultas
from pioerp.utils import resposta

from . import movimentacao_bp


@movimentacao_bp.get("/dashboard")
def dashboard():
    return resposta(consultas.dashboard())


@movimentacao_bp.get("/estoque-critico")
def estoque_critico():
    rows = consultas.estoque_critico()
    return resposta(rows, total=len(rows))


@movimentacao_bp.get("")
def listar():
    rows = consultas.historico(
        equipamento_id=request.args.get("equipamento_id"),
        tipo=request.args.get("tipo"),
        limit=request.args.get("limit", 100),
        offset=request.args.get("offset", 0),
        limite_maximo=current_app.config["HISTORICO_LIMITE_MAXIMO"],
    )
    return resposta(rows, total=len(rows))
