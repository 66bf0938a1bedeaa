from pioerp.services import catalogo, consultas
from pioerp.utils import dados_json, resposta

from . import catalogo_bp


@catalogo_bp.get("")
def listar():
    return resposta(consultas.estoque_por_catalogo())


@catalogo_bp.get("/<int:item_id>")
def obter(item_id):
    return resposta(consultas.item_catalogo(item_id))


@catalogo_bp.post("")
def criar():
    item = catalogo.criar(dados_json())
    return resposta(item.to_dict(), message="Item de catálogo criado.", status=201)


@catalogo_bp.put("/<int:item_id>")
def atualizar(item_id):
    item = catalogo.atualizar(item_id, dados_json())
    return resposta(item.to_dict())


@catalogo_bp.delete("/<int:item_id>")
def desativar(item_id):
    item = catalogo.desativar(item_id)
    return resposta(
        {"id": item.id, "nome": item.nome, "ativo": item.ativo},
        message="Item desativado com sucesso.",
    )
