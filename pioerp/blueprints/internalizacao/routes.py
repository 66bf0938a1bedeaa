from pioerp.services import consultas, equipamentos
from pioerp.utils import dados_json, resposta

from . import internalizacao_bp


@internalizacao_bp.get("")
def listar():
    rows = consultas.aguardando_internalizacao()
    return resposta(rows, total=len(rows))


@internalizacao_bp.get("/locais-por-modelo/<int:item_catalogo_id>")
def locais_por_modelo(item_catalogo_id):
    rows = consultas.locais_por_modelo(item_catalogo_id)
    return resposta(rows, total=len(rows))


@internalizacao_bp.post("/<int:equipamento_id>/aprovar")
def aprovar(equipamento_id):
    equip = equipamentos.aprovar_internalizacao(equipamento_id, dados_json())
    return resposta(
        equip.to_dict(),
        message="Internalização aprovada. Equipamento disponível para reposição.",
    )
