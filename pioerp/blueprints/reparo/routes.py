from flask import request

from pioerp.services import consultas, reparos, solicitacoes
from pioerp.utils import dados_json, resposta

from . import reparo_bp


# rotas fixas antes de /<id>
@reparo_bp.get("/prioridades")
def prioridades():
    rows = consultas.prioridades_reparo()
    return resposta(rows, total=len(rows))


@reparo_bp.get("/criticos")
def criticos():
    rows = consultas.criticos_para_reparo()
    return resposta(rows, total=len(rows))


# ------------------------- solicitações de lote -------------------------
@reparo_bp.get("/solicitacoes")
def listar_solicitacoes():
    rows = consultas.listar_solicitacoes(request.args.get("status"))
    return resposta(rows, total=len(rows))


@reparo_bp.post("/solicitar-lote")
def solicitar_lote():
    sol = solicitacoes.criar(dados_json())
    return resposta(
        sol.to_dict(),
        message="Solicitação enviada ao almoxarifado.",
        status=201,
    )


@reparo_bp.put("/solicitacoes/<int:solicitacao_id>")
def atualizar_solicitacao(solicitacao_id):
    sol = solicitacoes.atualizar_status(solicitacao_id, dados_json())
    return resposta(sol.to_dict(), message=solicitacoes.MENSAGENS_STATUS[sol.status])


# ------------------------- reparo -------------------------
@reparo_bp.get("/<int:reparo_id>")
def obter(reparo_id):
    return resposta(reparos.obter(reparo_id))


@reparo_bp.put("/<int:reparo_id>")
def atualizar(reparo_id):
    rep = reparos.atualizar(reparo_id, dados_json())
    return resposta(rep.to_dict())


@reparo_bp.post("/<int:reparo_id>/iniciar")
def iniciar(reparo_id):
    resultado = reparos.iniciar(reparo_id)
    message = resultado.pop("message")
    return resposta(resultado, message=message)


@reparo_bp.post("/<int:reparo_id>/pausar")
def pausar(reparo_id):
    resultado = reparos.pausar(reparo_id)
    message = resultado.pop("message")
    return resposta(resultado, message=message)


@reparo_bp.post("/<int:reparo_id>/finalizar")
def finalizar(reparo_id):
    resultado = reparos.finalizar(reparo_id, dados_json())
    message = resultado.pop("message")
    return resposta(resultado, message=message)
